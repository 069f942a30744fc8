"""Identifier generators: CUID2 for schools, random document IDs for messages."""

import secrets
import string

from cuid2 import cuid_wrapper

_new_cuid = cuid_wrapper()

_DOCUMENT_ID_ALPHABET = string.ascii_letters + string.digits
DOCUMENT_ID_LENGTH = 20


def generate_cuid() -> str:
    """Collision-resistant school ID, chosen before the school is written."""
    return str(_new_cuid())


def generate_document_id() -> str:
    """Random 20-character ID in the shape Firestore client SDKs use for auto IDs."""
    return "".join(secrets.choice(_DOCUMENT_ID_ALPHABET) for _ in range(DOCUMENT_ID_LENGTH))
