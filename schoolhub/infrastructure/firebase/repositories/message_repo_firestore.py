"""Firestore-backed message repository (implements IMessageRepository)."""

from __future__ import annotations

from schoolhub.application.dtos.message import MessageResult
from schoolhub.domain.value_objects import ConversationKey
from schoolhub.infrastructure.firebase._rest_client import DocumentSnapshot, FirestoreRESTClient
from schoolhub.infrastructure.firebase.collections import COLLECTION_MESSAGES
from schoolhub.infrastructure.firebase.repositories._errors import store_errors
from schoolhub.shared.utils.datetime import ensure_utc, utc_now


class FirestoreMessageRepository:
    """Message repository using Firestore.

    Conversation reads filter on (school_id, conversation_key) and order by
    created_at, which needs a composite index on those three fields. The
    document name breaks created_at ties so the read can resume after any row.
    """

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_MESSAGES)

    async def list_conversation(
        self, school_id: str, key: ConversationKey, page_size: int = 200
    ) -> list[MessageResult]:
        """Return every message of the conversation, oldest first, read page by page."""
        results: list[MessageResult] = []
        with store_errors("messages.list"):
            while True:
                q = (
                    self._coll.where("school_id", "==", school_id)
                    .where("conversation_key", "==", key.value)
                    .order_by("created_at")
                    .order_by("__name__")
                    .limit(page_size)
                )
                if results:
                    last = results[-1]
                    q = q.start_after(last.created_at, self._coll.document(last.id))
                page = [self._to_result(snapshot) async for snapshot in q.stream()]
                results.extend(page)
                if len(page) < page_size:
                    return results

    @staticmethod
    def _to_result(snapshot: DocumentSnapshot) -> MessageResult:
        d = snapshot.to_dict()
        return MessageResult(
            id=snapshot.id,
            school_id=d.get("school_id", ""),
            sender_id=d.get("sender_id", ""),
            receiver_id=d.get("receiver_id", ""),
            body=d.get("body", ""),
            created_at=ensure_utc(d.get("created_at")) or utc_now(),
        )

    async def create_message(
        self, school_id: str, sender_id: str, receiver_id: str, body: str
    ) -> MessageResult:
        """Insert with a store-assigned ID; created_at is the server commit time."""
        ref = self._coll.document()
        batch = self._client.batch().create(
            ref,
            {
                "school_id": school_id,
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "body": body,
                "conversation_key": ConversationKey.between(sender_id, receiver_id).value,
            },
            server_timestamps=("created_at",),
        )
        with store_errors("messages.create"):
            results = await batch.commit()
        created_at = results[0][0] if results and results[0] else utc_now()
        return MessageResult(
            id=ref.id,
            school_id=school_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            body=body,
            created_at=created_at,
        )
