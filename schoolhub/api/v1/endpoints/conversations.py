"""Conversation API: load and send direct messages (onboarded callers only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from schoolhub.api.v1.dependencies import get_message_service, require_ready_profile
from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.application.services.message_service import MessageService
from schoolhub.core.config import get_settings
from schoolhub.core.limiter import limit_message_send
from schoolhub.schemas.message import (
    ConversationResponse,
    MessageCreateRequest,
    MessageResponse,
)

router = APIRouter()


@router.get("/{peer_id}/messages", response_model=ConversationResponse)
async def list_messages(
    peer_id: str,
    profile: Annotated[ProfileResult, Depends(require_ready_profile)],
    messages: Annotated[MessageService, Depends(get_message_service)],
) -> ConversationResponse:
    """The whole conversation with peer, oldest first."""
    rows = await messages.list_conversation(
        profile.school_id,
        profile.id,
        peer_id,
        page_size=get_settings().conversation_page_size,
    )
    return ConversationResponse(
        peer_id=peer_id,
        messages=[MessageResponse.from_result(m) for m in rows],
    )


@router.post("/{peer_id}/messages", response_model=MessageResponse, status_code=201)
@limit_message_send
async def send_message(
    request: Request,
    peer_id: str,
    body: MessageCreateRequest,
    profile: Annotated[ProfileResult, Depends(require_ready_profile)],
    messages: Annotated[MessageService, Depends(get_message_service)],
) -> MessageResponse:
    """Send a message to peer (same school) and publish it to open conversations."""
    message = await messages.send_message(profile.school_id, profile.id, peer_id, body.body)
    return MessageResponse.from_result(message)
