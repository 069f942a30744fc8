"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
Requests run either with service-account credentials (privileged, bypass
security rules) or with the caller's Firebase ID token (security rules
apply per caller; see FirestoreRESTClient.as_user).
All HTTP calls use httpx.AsyncClient so they do not block the event loop.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Iterable
from typing import Any
from urllib.parse import quote

import httpx

from schoolhub.infrastructure.firebase._rest_encoding import (
    decode_document,
    decode_value,
    encode_document,
    encode_fields,
    encode_value,
)
from schoolhub.shared.utils.generators import generate_document_id

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


class FirestoreError(Exception):
    """Base for Firestore REST errors the repositories translate."""


class DocumentExistsError(FirestoreError):
    """Raised when a create returns 409 (document ID already exists)."""


class PermissionDeniedError(FirestoreError):
    """Raised when security rules reject the request (401/403)."""


class MissingCredentialsError(FirestoreError):
    """Raised when no service account is configured and no caller token was given."""


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
    params: list[tuple[str, str]] | None = None,
) -> Any:
    """Perform async HTTP request to Firestore REST API. 404 returns None."""
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    if method == "GET":
        resp = await client.get(url, headers=headers, params=params)
    elif method == "PATCH":
        resp = await client.patch(url, headers=headers, json=body, params=params)
    elif method == "POST":
        resp = await client.post(url, headers=headers, json=body, params=params)
    elif method == "DELETE":
        resp = await client.delete(url, headers=headers, params=params)
    else:
        raise ValueError(f"Unsupported method: {method!r}")
    if resp.status_code == 404:
        return None
    if resp.status_code == 409:
        raise DocumentExistsError("Document already exists")
    if resp.status_code in (401, 403):
        raise PermissionDeniedError(_error_message(resp))
    if resp.status_code not in (200, 204):
        resp.raise_for_status()
    if method == "DELETE":
        return {}
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


def _error_message(resp: httpx.Response) -> str:
    try:
        return resp.json().get("error", {}).get("message", resp.reason_phrase)
    except (ValueError, AttributeError):
        return resp.reason_phrase


class DocumentReference:
    """Reference to a single document; matches firestore API style."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path.split("/")[-1]

    @property
    def path(self) -> str:
        """Full resource name (projects/.../documents/<collection>/<id>)."""
        return self._path

    async def set(self, data: dict[str, Any], merge: bool = False) -> None:
        """Create or overwrite the document.

        With merge=True only the given fields are written (updateMask) and
        other fields are kept; the document is created if missing.
        """
        params = [("updateMask.fieldPaths", k) for k in data] if merge else None
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            method="PATCH",
            body=encode_document(data),
            access_token=await self._client.get_token(),
            params=params,
        )

    async def get(self) -> DocumentSnapshot | None:
        """Fetch the document; returns None if not found."""
        out = await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            access_token=await self._client.get_token(),
        )
        if not out:
            return None
        return DocumentSnapshot(self.id, decode_document(out.get("fields")))

    async def delete(self) -> None:
        """Delete the document. Idempotent if document is already missing (404)."""
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}",
            method="DELETE",
            access_token=await self._client.get_token(),
        )


class DocumentSnapshot:
    """Snapshot of a document (id + data)."""

    def __init__(self, id_: str, data: dict):
        self.id = id_
        self._data = data

    def to_dict(self) -> dict:
        return self._data


_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "not-in": "NOT_IN",
}


class _Query:
    """Fluent query builder for collection; runs via runQuery (filters/order/limit on server).

    Multiple where() calls are combined with AND.
    """

    def __init__(self, client: FirestoreRESTClient, parent: str, collection_id: str):
        self._client = client
        self._parent = parent
        self._collection_id = collection_id
        self._filters: list[dict[str, Any]] = []
        self._order_by: list[dict[str, Any]] = []
        self._limit: int = 100
        self._start_after: list[dict[str, Any]] | None = None

    def where(self, field: str, op: str, value: Any) -> _Query:
        self._filters.append(
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": _OP_MAP.get(op, op),
                    "value": encode_value(value),
                }
            }
        )
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> _Query:
        self._order_by.append({"field": {"fieldPath": field}, "direction": direction})
        return self

    def limit(self, n: int) -> _Query:
        self._limit = n
        return self

    def start_after(self, *values: Any) -> _Query:
        """Resume after the row whose order_by fields equal values (one per order_by).

        A DocumentReference value is the cursor for ordering by __name__.
        """
        self._start_after = [
            {"referenceValue": v.path} if isinstance(v, DocumentReference) else encode_value(v)
            for v in values
        ]
        return self

    def _structured_query(self) -> dict[str, Any]:
        structured: dict[str, Any] = {"from": [{"collectionId": self._collection_id}]}
        if len(self._filters) == 1:
            structured["where"] = self._filters[0]
        elif self._filters:
            structured["where"] = {
                "compositeFilter": {"op": "AND", "filters": self._filters}
            }
        if self._order_by:
            structured["orderBy"] = self._order_by
        if self._start_after is not None:
            structured["startAt"] = {"values": self._start_after, "before": False}
        if self._limit:
            structured["limit"] = self._limit
        return structured

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Execute the query and yield document snapshots."""
        resp = await _request_async(
            self._client._http,
            f"{_BASE}/{self._parent}:runQuery",
            method="POST",
            body={"structuredQuery": self._structured_query()},
            access_token=await self._client.get_token(),
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            if "document" not in item:
                continue
            doc = item["document"]
            name = doc.get("name", "")
            doc_id = name.split("/")[-1] if name else ""
            yield DocumentSnapshot(doc_id, decode_document(doc.get("fields")))


class CollectionReference:
    """Reference to a collection; matches firestore API style."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path.rstrip("/")

    def document(self, document_id: str | None = None) -> DocumentReference:
        """Reference a document; without an ID a random one is assigned (like the client SDK)."""
        doc_id = document_id or generate_document_id()
        return DocumentReference(self._client, f"{self._path}/{doc_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create a document with the given ID (fail with DocumentExistsError if it exists)."""
        await _request_async(
            self._client._http,
            f"{_BASE}/{self._path}?documentId={quote(document_id, safe='')}",
            method="POST",
            body=encode_document(data),
            access_token=await self._client.get_token(),
        )

    def where(self, field: str, op: str, value: Any) -> _Query:
        """Start a query with a filter. Chain .where(), .order_by(), .limit(), then .stream()."""
        parent = self._path.rsplit("/", 1)[0]
        collection_id = self._path.split("/")[-1]
        return _Query(self._client, parent, collection_id).where(field, op, value)


class WriteBatch:
    """Atomic multi-document write via the :commit endpoint; matches firestore batch style."""

    def __init__(self, client: FirestoreRESTClient):
        self._client = client
        self._writes: list[dict[str, Any]] = []

    def create(
        self,
        ref: DocumentReference,
        data: dict[str, Any],
        server_timestamps: Iterable[str] = (),
    ) -> WriteBatch:
        """Create ref (commit fails with DocumentExistsError if it exists).

        Fields named in server_timestamps are set to the commit time by the server.
        """
        write: dict[str, Any] = {
            "update": {"name": ref.path, "fields": encode_fields(data)},
            "currentDocument": {"exists": False},
        }
        transforms = [
            {"fieldPath": f, "setToServerValue": "REQUEST_TIME"} for f in server_timestamps
        ]
        if transforms:
            write["updateTransforms"] = transforms
        self._writes.append(write)
        return self

    def delete(self, ref: DocumentReference) -> WriteBatch:
        self._writes.append({"delete": ref.path})
        return self

    async def commit(self) -> list[list[Any]]:
        """Apply all writes atomically. Returns decoded transform results per write."""
        if not self._writes:
            return []
        out = await _request_async(
            self._client._http,
            f"{_BASE}/{self._client._prefix}:commit",
            method="POST",
            body={"writes": self._writes},
            access_token=await self._client.get_token(),
        )
        results = (out or {}).get("writeResults", [])
        return [
            [decode_value(t) for t in (r.get("transformResults") or [])] for r in results
        ]


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials=None,
        *,
        http_client: httpx.AsyncClient | None = None,
        user_token: str | None = None,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._user_token = user_token
        self._prefix = f"projects/{project_id}/databases/(default)/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=30.0)
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def is_privileged(self) -> bool:
        """True when requests run with service-account credentials (security rules bypassed)."""
        return self._user_token is None and self._credentials is not None

    def as_user(self, id_token: str) -> FirestoreRESTClient:
        """Client sharing this connection pool whose requests run as the caller (rules apply)."""
        return FirestoreRESTClient(self._project_id, http_client=self._http, user_token=id_token)

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        """Return the caller token, or a valid service-account access token (refreshed off-loop)."""
        if self._user_token is not None:
            return self._user_token
        if self._credentials is None:
            raise MissingCredentialsError("No service account configured")
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._prefix}/{collection_id}")

    def batch(self) -> WriteBatch:
        return WriteBatch(self)
