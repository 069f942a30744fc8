"""Realtime conversation sync: load, live-merge, send and teardown for one open conversation.

A ConversationScope owns one subscription and one consumer task. The
visible list is always sorted by (created_at, id) and holds each message
id at most once, whichever path (load, live event, send response, poll)
delivered it.
"""

from __future__ import annotations

import asyncio
import bisect
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from schoolhub.application.dtos.message import MessageResult
from schoolhub.application.interfaces.services import IRealtimeChannel, RealtimeSubscription
from schoolhub.application.services.message_service import MessageService
from schoolhub.core.constants import EVENT_INSERT, TABLE_MESSAGES
from schoolhub.domain.exceptions import (
    MessageSendException,
    RealtimeUnavailableException,
    SchoolHubException,
    ValidationException,
)
from schoolhub.domain.value_objects import ConversationKey
from schoolhub.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

OnMessage = Callable[[MessageResult], Awaitable[None]]


class ConversationScope:
    """One open conversation between me and peer inside a school."""

    def __init__(
        self,
        message_service: MessageService,
        channel: IRealtimeChannel | None,
        school_id: str,
        me: str,
        peer: str,
        page_size: int = 200,
        poll_interval: float = 5.0,
        on_message: OnMessage | None = None,
    ) -> None:
        self.message_service = message_service
        self.channel = channel
        self.school_id = school_id
        self.me = me
        self.peer = peer
        self.key = ConversationKey.between(me, peer)
        self.page_size = page_size
        self.poll_interval = poll_interval
        self.on_message = on_message

        self._messages: list[MessageResult] = []
        self._ids: set[str] = set()
        self._subscription: RealtimeSubscription | None = None
        self._task: asyncio.Task[None] | None = None
        self._sending = False
        self._polling = False
        self._live = False
        self._closed = False

    @property
    def messages(self) -> list[MessageResult]:
        """Snapshot of the visible list (ascending by created_at, id)."""
        return list(self._messages)

    @property
    def is_sending(self) -> bool:
        return self._sending

    @property
    def is_polling(self) -> bool:
        """True once live delivery failed and the scope reloads periodically."""
        return self._polling

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Subscribe, then load. A failed subscribe falls back to periodic reload.

        Events that arrive while the load is in flight are merged into the
        list without being passed to on_message; the loaded list already
        holds them for the caller.
        """
        if self.channel is not None:
            try:
                self._subscription = await self.channel.subscribe(
                    self.school_id, TABLE_MESSAGES, EVENT_INSERT
                )
            except RealtimeUnavailableException as e:
                logger.warning(
                    "Realtime subscribe failed for school %s (%s); polling every %.1fs",
                    self.school_id,
                    e.details.get("reason"),
                    self.poll_interval,
                )
        if self._subscription is not None:
            self._start_task(self._consume(self._subscription))
        try:
            await self.load()
        except Exception:
            await self.close()
            raise
        self._live = True
        if self._subscription is None:
            self._start_task(self._poll_forever())

    async def load(self) -> list[MessageResult]:
        """Fetch the whole conversation and merge it into the visible list.

        Rows already visible (from events or sends) are kept; once the scope
        is live, newly visible rows are passed to on_message.
        """
        rows = await self.message_service.list_conversation(
            self.school_id, self.me, self.peer, page_size=self.page_size
        )
        for message in rows:
            if self._closed:
                break
            if self._merge(message):
                await self._notify(message)
        return self.messages

    async def send(self, body: str) -> MessageResult:
        """Insert a message from me to peer and merge the stored row.

        Raises:
            ValidationException: Body blank or too long.
            MessageSendException: Insert failed; the visible list is unchanged.
        """
        if self._closed:
            raise MessageSendException("Conversation is closed")
        if not body or not body.strip():
            raise ValidationException("Message body is required", field="body")

        self._sending = True
        try:
            message = await self.message_service.send_message(
                self.school_id, self.me, self.peer, body
            )
        except ValidationException:
            raise
        except SchoolHubException as e:
            logger.warning("Send to %s failed: %s", self.peer, e.error_code)
            raise MessageSendException(e.message, e.error_code) from e
        finally:
            self._sending = False

        if not self._closed and self._merge(message):
            await self._notify(message)
        return message

    async def close(self) -> None:
        """Cancel the consumer and close the subscription. Idempotent."""
        if self._closed:
            return
        self._closed = True
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            for result in await asyncio.gather(task, return_exceptions=True):
                if isinstance(result, Exception):
                    logger.warning("Conversation consumer ended with error: %r", result)
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()

    async def apply_event(self, row: dict[str, Any]) -> bool:
        """Apply one insert event row. Return True if it became visible."""
        if self._closed:
            return False
        try:
            message = MessageResult.from_dict(row)
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring malformed message event: %r", row)
            return False
        if message.school_id != self.school_id:
            return False
        if not self.key.includes_pair(message.sender_id, message.receiver_id):
            return False
        if not self._merge(message):
            return False
        await self._notify(message)
        return True

    def _start_task(self, coro: Coroutine[Any, Any, None]) -> None:
        self._task = asyncio.create_task(coro)

    def _merge(self, message: MessageResult) -> bool:
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        bisect.insort(self._messages, message, key=lambda m: m.sort_key)
        return True

    async def _notify(self, message: MessageResult) -> None:
        """Pass a newly visible message to on_message once the scope is live.

        A failing callback means the receiving side is gone: the scope is
        closed so no subscription outlives it.
        """
        if self.on_message is None or not self._live:
            return
        try:
            await self.on_message(message)
        except Exception:
            logger.exception(
                "Delivering message %s to %s failed; closing conversation", message.id, self.me
            )
            await self.close()

    async def _consume(self, subscription: RealtimeSubscription) -> None:
        try:
            async for row in subscription:
                if self._closed:
                    return
                await self.apply_event(row)
                if self._closed:
                    return
        except RealtimeUnavailableException as e:
            logger.warning("Realtime stream broke for school %s: %s", self.school_id, e.details)
        if not self._closed:
            await self._poll_forever()

    async def _poll_forever(self) -> None:
        self._polling = True
        while not self._closed:
            await asyncio.sleep(self.poll_interval)
            if self._closed:
                return
            try:
                await self.load()
            except SchoolHubException as e:
                logger.warning("Conversation reload failed: %s", e.error_code)


class MessageSynchronizer:
    """Keeps at most one conversation open; opening a new one tears down the previous."""

    def __init__(
        self,
        message_service: MessageService,
        channel: IRealtimeChannel | None = None,
        page_size: int = 200,
        poll_interval: float = 5.0,
    ) -> None:
        self.message_service = message_service
        self.channel = channel
        self.page_size = page_size
        self.poll_interval = poll_interval
        self._current: ConversationScope | None = None

    @property
    def current(self) -> ConversationScope | None:
        return self._current

    async def open(
        self,
        school_id: str,
        me: str,
        peer: str,
        on_message: OnMessage | None = None,
    ) -> ConversationScope:
        """Close the open conversation (if any), then load and subscribe the new one."""
        await self.close()
        scope = ConversationScope(
            message_service=self.message_service,
            channel=self.channel,
            school_id=school_id,
            me=me,
            peer=peer,
            page_size=self.page_size,
            poll_interval=self.poll_interval,
            on_message=on_message,
        )
        await scope.start()
        self._current = scope
        return scope

    async def close(self) -> None:
        scope, self._current = self._current, None
        if scope is not None:
            await scope.close()
