"""Firestore client (REST-based, no firebase-admin).

Initialized at app startup using either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string)
or FIREBASE_SERVICE_ACCOUNT_PATH (file path). Without a service account but
with FIREBASE_PROJECT_ID, a credential-less client is created that can only
run caller-scoped requests (FirestoreRESTClient.as_user); the privileged
join code lookup is then unavailable.
"""

import json
import logging
from pathlib import Path

from schoolhub.core.config import get_settings
from schoolhub.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)

_firestore_client: FirestoreRESTClient | None = None


def _load_key_dict() -> dict | None:
    """Return service account dict from env key or file path."""
    settings = get_settings()
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            logger.warning(
                "FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: %s (resolved: %s)",
                path,
                resolved,
            )
            return None
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def init_firebase() -> bool:
    """Initialize the Firestore client (REST API + google-auth).

    Idempotent if already initialized. On invalid credentials or any
    initialization error, logs the exception and returns False so the app
    can start (store-backed endpoints then answer 503).

    Returns:
        True if Firestore was initialized, False if disabled or on error.
    """
    global _firestore_client
    if _firestore_client is not None:
        return True
    settings = get_settings()
    try:
        key_dict = _load_key_dict()
        if key_dict:
            project_id = key_dict.get("project_id")
            if not project_id:
                logger.error("Firebase service account JSON missing 'project_id'")
                return False
            _firestore_client = FirestoreRESTClient(project_id, _get_credentials(key_dict))
            logger.info("Firestore initialized for project %s (service account)", project_id)
            return True
        if settings.firebase_project_id and settings.user_scoped_store:
            _firestore_client = FirestoreRESTClient(settings.firebase_project_id)
            logger.info(
                "Firestore initialized for project %s (caller-scoped only)",
                settings.firebase_project_id,
            )
            return True
        return False
    except Exception:
        logger.exception("Firebase initialization failed")
        return False


def get_firestore_client() -> FirestoreRESTClient | None:
    """Return the Firestore client, or None if not configured.

    Same API as the Firebase Admin client for the operations we use (all async):
    - await db.collection(name).document(id).set(data, merge=True)
    - await db.collection(name).document(id).get() -> DocumentSnapshot | None
    - await db.collection(name).create(id, data)
    - async for doc in db.collection(name).where(...).order_by(...).stream()
    - await db.batch().create(...).delete(...).commit()
    """
    return _firestore_client


async def close_firebase() -> None:
    """Close the Firestore client's HTTP connection pool. Call from app shutdown."""
    global _firestore_client
    if _firestore_client is not None:
        await _firestore_client.aclose()
        _firestore_client = None
        logger.info("Firestore HTTP client closed")
