"""Firestore-backed profile repository (implements IProfileRepository)."""

from __future__ import annotations

from typing import Any

from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.domain.enums import UserRole
from schoolhub.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    DocumentSnapshot,
    FirestoreRESTClient,
)
from schoolhub.infrastructure.firebase.collections import COLLECTION_PROFILES
from schoolhub.infrastructure.firebase.repositories._errors import store_errors
from schoolhub.shared.telemetry.logging import get_logger
from schoolhub.shared.utils.datetime import utc_now

logger = get_logger(__name__)


def _parse_role(value: Any) -> UserRole | None:
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        logger.warning("Ignoring unknown profile role %r", value)
        return None


def _to_result(snapshot: DocumentSnapshot) -> ProfileResult:
    d = snapshot.to_dict()
    return ProfileResult(
        id=snapshot.id,
        full_name=d.get("full_name") or "",
        role=_parse_role(d.get("role")),
        school_id=d.get("school_id"),
        phone=d.get("phone"),
        avatar_url=d.get("avatar_url"),
    )


class FirestoreProfileRepository:
    """Profile repository using Firestore; document ID is the identity id."""

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_PROFILES)

    async def get_by_id(self, profile_id: str) -> ProfileResult | None:
        """Return profile by ID."""
        with store_errors("profiles.get"):
            doc = await self._coll.document(profile_id).get()
        if not doc:
            return None
        return _to_result(doc)

    async def create_if_absent(self, profile_id: str, full_name: str) -> bool:
        """Create an empty profile; a concurrent or earlier create wins (no overwrite)."""
        now = utc_now()
        with store_errors("profiles.create"):
            try:
                await self._coll.create(
                    profile_id,
                    {
                        "full_name": full_name,
                        "role": None,
                        "school_id": None,
                        "phone": None,
                        "avatar_url": None,
                        "created_at": now,
                        "updated_at": now,
                    },
                )
            except DocumentExistsError:
                return False
        return True

    async def set_role(
        self, profile_id: str, role: UserRole, full_name: str
    ) -> ProfileResult:
        """Upsert role (and display name when known)."""
        return await self._upsert(profile_id, {"role": role.value}, full_name, "profiles.set_role")

    async def link_school(
        self, profile_id: str, school_id: str, role: UserRole, full_name: str
    ) -> ProfileResult:
        """Upsert school_id and role (and display name when known)."""
        return await self._upsert(
            profile_id,
            {"school_id": school_id, "role": role.value},
            full_name,
            "profiles.link_school",
        )

    async def _upsert(
        self, profile_id: str, fields: dict[str, Any], full_name: str, operation: str
    ) -> ProfileResult:
        updates = dict(fields)
        if full_name:
            updates["full_name"] = full_name
        updates["updated_at"] = utc_now()
        ref = self._coll.document(profile_id)
        with store_errors(operation):
            await ref.set(updates, merge=True)
            doc = await ref.get()
        if doc is None:
            return ProfileResult(
                id=profile_id,
                full_name=full_name,
                role=_parse_role(fields.get("role")),
                school_id=fields.get("school_id"),
            )
        return _to_result(doc)
