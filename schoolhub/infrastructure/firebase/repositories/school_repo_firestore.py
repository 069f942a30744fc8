"""Firestore-backed school repository and privileged join code lookup."""

from __future__ import annotations

from schoolhub.application.dtos.school import SchoolResult
from schoolhub.domain.exceptions import (
    JoinCodeTakenException,
    PrivilegedLookupUnavailableException,
)
from schoolhub.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    DocumentSnapshot,
    FirestoreRESTClient,
)
from schoolhub.infrastructure.firebase.collections import (
    COLLECTION_SCHOOL_CODES,
    COLLECTION_SCHOOLS,
)
from schoolhub.infrastructure.firebase.repositories._errors import store_errors


def _to_result(snapshot: DocumentSnapshot) -> SchoolResult:
    d = snapshot.to_dict()
    return SchoolResult(
        id=snapshot.id,
        name=d.get("name", ""),
        region=d.get("region", ""),
        join_code=d.get("join_code", ""),
        address=d.get("address"),
        created_at=d.get("created_at"),
    )


class FirestoreSchoolRepository:
    """School repository using Firestore.

    Join codes are unique across schools: school_codes/{code} is created in
    the same commit as the school, and the commit fails if the code exists.
    """

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_SCHOOLS)
        self._codes = client.collection(COLLECTION_SCHOOL_CODES)

    async def create_school(
        self,
        school_id: str,
        name: str,
        region: str,
        join_code: str,
        address: str | None = None,
    ) -> SchoolResult:
        """Reserve join_code and insert the school atomically."""
        batch = (
            self._client.batch()
            .create(
                self._codes.document(join_code),
                {"school_id": school_id},
                server_timestamps=("created_at",),
            )
            .create(
                self._coll.document(school_id),
                {
                    "name": name,
                    "region": region,
                    "address": address,
                    "join_code": join_code,
                },
                server_timestamps=("created_at",),
            )
        )
        with store_errors("schools.create"):
            try:
                results = await batch.commit()
            except DocumentExistsError:
                raise JoinCodeTakenException(join_code) from None
        created_at = results[1][0] if len(results) > 1 and results[1] else None
        return SchoolResult(
            id=school_id,
            name=name,
            region=region,
            join_code=join_code,
            address=address,
            created_at=created_at,
        )

    async def get_by_id(self, school_id: str) -> SchoolResult | None:
        """Return school by ID."""
        with store_errors("schools.get"):
            doc = await self._coll.document(school_id).get()
        if not doc:
            return None
        return _to_result(doc)

    async def find_ids_by_code(self, join_code: str) -> list[str]:
        """Exact-match query on join_code, run with the caller's access (at most two IDs)."""
        ids: list[str] = []
        with store_errors("schools.find_by_code"):
            async for snapshot in self._coll.where("join_code", "==", join_code).limit(2).stream():
                ids.append(snapshot.id)
        return ids

    async def delete_school(self, school_id: str, join_code: str | None = None) -> None:
        """Delete the school and its code reservation in one commit."""
        with store_errors("schools.delete"):
            if join_code is None:
                doc = await self._coll.document(school_id).get()
                join_code = doc.to_dict().get("join_code") if doc else None
            batch = self._client.batch().delete(self._coll.document(school_id))
            if join_code:
                batch.delete(self._codes.document(join_code))
            await batch.commit()


class FirestoreSchoolCodeLookup:
    """Privileged join code lookup: reads school_codes with service-account credentials."""

    def __init__(self, client: FirestoreRESTClient | None) -> None:
        self._client = client

    async def find_school_id_by_code(self, join_code: str) -> str | None:
        if self._client is None or not self._client.is_privileged:
            raise PrivilegedLookupUnavailableException("no service account configured")
        with store_errors("school_codes.get"):
            doc = await self._client.collection(COLLECTION_SCHOOL_CODES).document(join_code).get()
        if not doc:
            return None
        return doc.to_dict().get("school_id")
