"""Direct messaging: conversation load and message send with realtime fan-out."""

from __future__ import annotations

from schoolhub.application.dtos.message import MessageResult
from schoolhub.application.interfaces.repositories import (
    IMessageRepository,
    IProfileRepository,
)
from schoolhub.application.interfaces.services import IRealtimeChannel
from schoolhub.core.constants import EVENT_INSERT, TABLE_MESSAGES
from schoolhub.domain.exceptions import ResourceNotFoundException, ValidationException
from schoolhub.domain.value_objects import ConversationKey
from schoolhub.shared.telemetry.logging import get_logger
from schoolhub.shared.utils.sanitization import InputSanitizer

logger = get_logger(__name__)


class MessageService:
    """Loads conversations and sends messages within one school.

    The insert is the source of truth; publishing the insert event is
    best-effort (subscribers that miss it catch up on their next load).
    """

    def __init__(
        self,
        message_repo: IMessageRepository,
        profile_repo: IProfileRepository,
        channel: IRealtimeChannel | None = None,
        max_length: int = 2000,
    ) -> None:
        self.message_repo = message_repo
        self.profile_repo = profile_repo
        self.channel = channel
        self.max_length = max_length

    async def list_conversation(
        self, school_id: str, me: str, peer: str, page_size: int = 200
    ) -> list[MessageResult]:
        """All messages between me and peer in school, ascending by (created_at, id).

        page_size bounds each store read, not the result.
        """
        key = ConversationKey.between(me, peer)
        messages = await self.message_repo.list_conversation(school_id, key, page_size=page_size)
        return sorted(messages, key=lambda m: m.sort_key)

    async def send_message(
        self, school_id: str, sender_id: str, receiver_id: str, body: str
    ) -> MessageResult:
        """Validate, insert, then publish the insert on the school channel.

        Raises:
            ValidationException: Body blank or too long, or receiver is the sender.
            ResourceNotFoundException: Receiver has no profile in this school.
        """
        clean_body = InputSanitizer.clean_text(body)
        if not clean_body:
            raise ValidationException("Message body is required", field="body")
        if len(clean_body) > self.max_length:
            raise ValidationException(
                f"Message body must not exceed {self.max_length} characters", field="body"
            )
        if receiver_id == sender_id:
            raise ValidationException("Cannot send a message to yourself", field="receiver_id")

        receiver = await self.profile_repo.get_by_id(receiver_id)
        if receiver is None or receiver.school_id != school_id:
            raise ResourceNotFoundException("profile", receiver_id)

        message = await self.message_repo.create_message(
            school_id=school_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            body=clean_body,
        )
        await self._publish(message)
        return message

    async def _publish(self, message: MessageResult) -> None:
        if self.channel is None:
            return
        published = await self.channel.publish(
            message.school_id, TABLE_MESSAGES, EVENT_INSERT, message.to_dict()
        )
        if not published:
            logger.warning(
                "Insert event for message %s not published; subscribers will catch up on reload",
                message.id,
            )
