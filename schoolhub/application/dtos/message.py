"""DTOs for direct messaging (no dependency on the store or realtime bus)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from schoolhub.shared.utils.datetime import ensure_utc, parse_utc


@dataclass(frozen=True)
class MessageResult:
    """Message read-model. Immutable once created; identity is the store-assigned id."""

    id: str
    school_id: str
    sender_id: str
    receiver_id: str
    body: str
    created_at: datetime

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """Ascending by creation time; id breaks ties so ordering is total."""
        return (self.created_at, self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish / WebSocket push."""
        return {
            "id": self.id,
            "school_id": self.school_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "body": self.body,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageResult:
        """Deserialize from a realtime event row.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If created_at is not a valid timestamp.
        """
        created_at = data["created_at"]
        if isinstance(created_at, datetime):
            created_at = ensure_utc(created_at)
        else:
            created_at = parse_utc(str(created_at))
        return cls(
            id=str(data["id"]),
            school_id=str(data["school_id"]),
            sender_id=str(data["sender_id"]),
            receiver_id=str(data["receiver_id"]),
            body=str(data["body"]),
            created_at=created_at,
        )
