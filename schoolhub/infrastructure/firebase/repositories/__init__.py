"""Firestore repository implementations."""

from schoolhub.infrastructure.firebase.repositories.message_repo_firestore import (
    FirestoreMessageRepository,
)
from schoolhub.infrastructure.firebase.repositories.profile_repo_firestore import (
    FirestoreProfileRepository,
)
from schoolhub.infrastructure.firebase.repositories.school_repo_firestore import (
    FirestoreSchoolCodeLookup,
    FirestoreSchoolRepository,
)

__all__ = [
    "FirestoreMessageRepository",
    "FirestoreProfileRepository",
    "FirestoreSchoolCodeLookup",
    "FirestoreSchoolRepository",
]
