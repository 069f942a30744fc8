"""Direct message API schemas (HTTP and WebSocket frames)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from schoolhub.application.dtos.message import MessageResult


class MessageCreateRequest(BaseModel):
    """Request body for POST /conversations/{peer_id}/messages."""

    body: str = Field(..., max_length=10000, description="Message text (trimmed, HTML stripped)")


class MessageResponse(BaseModel):
    id: str
    school_id: str
    sender_id: str
    receiver_id: str
    body: str
    created_at: datetime

    @classmethod
    def from_result(cls, message: MessageResult) -> MessageResponse:
        return cls(
            id=message.id,
            school_id=message.school_id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            body=message.body,
            created_at=message.created_at,
        )


class ConversationResponse(BaseModel):
    """Messages between the caller and peer, ascending by created_at."""

    peer_id: str
    messages: list[MessageResponse]
