"""WebSocket endpoint: one live conversation per connection.

Requires a token via query param ?token=... (or an Authorization header)
and a completed onboarding before the socket is accepted. Frames:

    server -> client  {"type": "snapshot", "messages": [...]}
                      {"type": "message", "message": {...}}
                      {"type": "error", "error": {...}}
    client -> server  {"type": "send", "body": "..."}
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from schoolhub.api.v1.dependencies import (
    ensure_ready,
    get_message_synchronizer,
    get_profile_resolver,
)
from schoolhub.application.dtos.message import MessageResult
from schoolhub.application.services.profile_resolver import ProfileResolver
from schoolhub.application.use_cases.conversations import MessageSynchronizer
from schoolhub.domain.exceptions import (
    AuthenticationException,
    OnboardingRequiredException,
    SchoolHubException,
)
from schoolhub.schemas.message import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def _reject_websocket(websocket: WebSocket, reason: str, code: int = 1008) -> None:
    """Accept then immediately close with code/reason so client gets a proper close frame."""
    await websocket.accept()
    await websocket.close(code=code, reason=reason)


def _message_frame(message: MessageResult) -> dict[str, Any]:
    return {
        "type": "message",
        "message": MessageResponse.from_result(message).model_dump(mode="json"),
    }


@router.websocket("/conversations/{peer_id}")
async def conversation_socket(
    websocket: WebSocket,
    peer_id: str,
    resolver: Annotated[ProfileResolver, Depends(get_profile_resolver)],
    synchronizer: Annotated[MessageSynchronizer, Depends(get_message_synchronizer)],
):
    """Open the conversation with peer; push the snapshot, then every new message."""
    try:
        profile = ensure_ready(await resolver.resolve())
    except AuthenticationException:
        await _reject_websocket(websocket, "Invalid token")
        return
    except OnboardingRequiredException:
        await _reject_websocket(websocket, "Onboarding incomplete")
        return
    except SchoolHubException as e:
        logger.warning("WebSocket profile resolution failed: %s", e.error_code)
        await _reject_websocket(websocket, e.error_code, code=1011)
        return

    await websocket.accept()

    async def forward(message: MessageResult) -> None:
        await websocket.send_json(_message_frame(message))

    try:
        scope = await synchronizer.open(profile.school_id, profile.id, peer_id, on_message=forward)
        await websocket.send_json(
            {
                "type": "snapshot",
                "messages": [
                    MessageResponse.from_result(m).model_dump(mode="json") for m in scope.messages
                ],
            }
        )
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await websocket.send_json(
                    {"type": "error", "error": {"error": "VALIDATION_ERROR", "message": "Invalid JSON"}}
                )
                continue
            if not isinstance(data, dict) or data.get("type") != "send":
                await websocket.send_json(
                    {"type": "error", "error": {"error": "VALIDATION_ERROR", "message": "Unknown frame"}}
                )
                continue
            try:
                await scope.send(str(data.get("body") or ""))
            except SchoolHubException as e:
                await websocket.send_json({"type": "error", "error": e.to_dict()})
    except WebSocketDisconnect:
        logger.debug("Conversation socket closed by client")
    except SchoolHubException as e:
        logger.warning("Conversation socket failed: %s", e.error_code)
        await websocket.close(code=1011, reason=e.error_code)
    finally:
        await synchronizer.close()
