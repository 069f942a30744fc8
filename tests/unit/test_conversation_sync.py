"""Tests for ConversationScope / MessageSynchronizer: dedup, ordering, filtering, teardown, fallback."""

import asyncio
import dataclasses
import itertools
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from schoolhub.application.dtos.message import MessageResult
from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.application.services.message_service import MessageService
from schoolhub.application.use_cases.conversations import (
    ConversationScope,
    MessageSynchronizer,
)
from schoolhub.domain.enums import UserRole
from schoolhub.domain.exceptions import (
    MessageSendException,
    StoreUnavailableException,
    ValidationException,
)
from tests.fakes import (
    T0,
    InMemoryMessageRepository,
    InMemoryProfileRepository,
    InMemoryRealtimeChannel,
    settle,
    unavailable_store,
)


class _Env:
    def __init__(self, with_channel: bool = True) -> None:
        self.profiles = InMemoryProfileRepository()
        for pid in ("u1", "u2", "u3"):
            self.profiles.add(
                ProfileResult(id=pid, full_name=pid, role=UserRole.TEACHER, school_id="s1")
            )
        self.messages = InMemoryMessageRepository()
        self.channel = InMemoryRealtimeChannel() if with_channel else None
        self.service = MessageService(self.messages, self.profiles, channel=self.channel)
        self.received: list[MessageResult] = []

    async def on_message(self, message: MessageResult) -> None:
        self.received.append(message)

    async def open(self, poll_interval: float = 5.0) -> ConversationScope:
        scope = ConversationScope(
            self.service,
            self.channel,
            school_id="s1",
            me="u1",
            peer="u2",
            poll_interval=poll_interval,
            on_message=self.on_message,
        )
        await scope.start()
        return scope


def _ids(scope: ConversationScope) -> list[str]:
    return [m.id for m in scope.messages]


async def test_load_returns_existing_conversation() -> None:
    env = _Env()
    env.messages.add("s1", "u2", "u1", "hello")
    env.messages.add("s1", "u1", "u2", "hi")
    env.messages.add("s1", "u1", "u3", "elsewhere")
    scope = await env.open()
    assert _ids(scope) == ["m1", "m2"]
    assert len(env.channel.open_subscriptions) == 1
    await scope.close()


async def test_send_then_event_appears_once() -> None:
    """Insert response and insert event for the same message converge to one entry."""
    env = _Env()
    scope = await env.open()

    sent = await scope.send("Hello")
    await settle()

    assert _ids(scope) == [sent.id]
    assert env.received == [sent]
    await scope.close()


async def test_event_then_send_response_appears_once() -> None:
    env = _Env()
    scope = await env.open()
    upcoming = env.messages.next_message("s1", "u1", "u2", "dup")
    env.service.send_message = AsyncMock(return_value=upcoming)

    assert await scope.apply_event(upcoming.to_dict())
    assert await scope.apply_event(upcoming.to_dict()) is False
    await scope.send("dup")

    assert _ids(scope) == [upcoming.id]
    assert env.received == [upcoming]
    await scope.close()


async def test_out_of_order_events_are_sorted() -> None:
    env = _Env()
    scope = await env.open()
    base = env.messages.next_message("s1", "u2", "u1", "x")
    rows = [
        dataclasses.replace(base, id=f"e{n}", created_at=T0 + timedelta(seconds=s))
        for n, s in ((1, 30), (2, 10), (3, 20), (4, 10))
    ]
    for row in rows:
        await scope.apply_event(row.to_dict())

    assert _ids(scope) == ["e2", "e4", "e3", "e1"]
    await scope.close()


def _interleaving_rows(env: _Env) -> dict[str, MessageResult]:
    base = env.messages.next_message("s1", "u2", "u1", "x")
    return {
        "peer_early": dataclasses.replace(base, id="p1", created_at=T0 + timedelta(seconds=10)),
        "own": dataclasses.replace(
            base, id="o1", sender_id="u1", receiver_id="u2", created_at=T0 + timedelta(seconds=20)
        ),
        "peer_late": dataclasses.replace(base, id="p2", created_at=T0 + timedelta(seconds=30)),
    }


@pytest.mark.parametrize(
    "steps",
    list(
        itertools.permutations(
            ("send", "own_event", "peer_early_event", "peer_late_event", "peer_early_event_again")
        )
    ),
)
async def test_any_interleaving_converges_to_one_sorted_list(steps: tuple[str, ...]) -> None:
    """Send responses and subscription events in any order yield each message once, sorted."""
    env = _Env()
    scope = await env.open()
    rows = _interleaving_rows(env)
    env.service.send_message = AsyncMock(return_value=rows["own"])

    for step in steps:
        if step == "send":
            await scope.send(rows["own"].body)
        elif step == "own_event":
            await scope.apply_event(rows["own"].to_dict())
        elif step.startswith("peer_early"):
            await scope.apply_event(rows["peer_early"].to_dict())
        else:
            await scope.apply_event(rows["peer_late"].to_dict())

    assert _ids(scope) == ["p1", "o1", "p2"]
    assert sorted(m.id for m in env.received) == ["o1", "p1", "p2"]
    await scope.close()


@pytest.mark.parametrize(
    "row",
    [
        {"school_id": "s2", "sender_id": "u2", "receiver_id": "u1"},
        {"school_id": "s1", "sender_id": "u3", "receiver_id": "u1"},
        {"school_id": "s1", "sender_id": "u2", "receiver_id": "u3"},
    ],
)
async def test_events_for_other_conversations_ignored(row: dict[str, str]) -> None:
    env = _Env()
    scope = await env.open()
    event = {"id": "x1", "body": "b", "created_at": T0.isoformat(), **row}
    assert await scope.apply_event(event) is False
    assert scope.messages == []
    assert env.received == []
    await scope.close()


async def test_malformed_event_ignored() -> None:
    env = _Env()
    scope = await env.open()
    assert await scope.apply_event({"id": "x1"}) is False
    assert await scope.apply_event({"id": "x2", "school_id": "s1", "sender_id": "u2",
                                    "receiver_id": "u1", "body": "b",
                                    "created_at": "not-a-date"}) is False
    assert scope.messages == []
    await scope.close()


async def test_live_event_from_peer_delivered() -> None:
    env = _Env()
    scope = await env.open()
    peer_service = MessageService(env.messages, env.profiles, channel=env.channel)

    sent = await peer_service.send_message("s1", "u2", "u1", "from peer")
    await settle()

    assert _ids(scope) == [sent.id]
    assert env.received == [sent]
    await scope.close()


async def test_send_failure_leaves_list_unchanged() -> None:
    env = _Env()
    env.messages.add("s1", "u2", "u1", "hello")
    scope = await env.open()
    env.messages.fail_create = unavailable_store()

    with pytest.raises(MessageSendException) as exc_info:
        await scope.send("Hi")

    assert exc_info.value.details["cause"] == "STORE_UNAVAILABLE"
    assert _ids(scope) == ["m1"]
    assert scope.is_sending is False
    await scope.close()


async def test_send_blank_body_rejected() -> None:
    env = _Env()
    scope = await env.open()
    with pytest.raises(ValidationException):
        await scope.send("   ")
    await scope.close()


async def test_send_after_close_rejected() -> None:
    env = _Env()
    scope = await env.open()
    await scope.close()
    with pytest.raises(MessageSendException):
        await scope.send("Hi")


async def test_close_releases_subscription_and_ignores_late_events() -> None:
    env = _Env()
    scope = await env.open()
    [subscription] = env.channel.subscriptions

    await scope.close()
    await scope.close()
    late = env.messages.next_message("s1", "u2", "u1", "late")

    assert subscription.closed
    assert env.channel.open_subscriptions == []
    assert await scope.apply_event(late.to_dict()) is False
    assert scope.messages == []
    assert scope.closed


async def test_subscribe_failure_falls_back_to_polling() -> None:
    env = _Env()
    env.channel.fail_subscribe = True
    scope = await env.open(poll_interval=0.01)

    env.messages.add("s1", "u2", "u1", "polled")
    for _ in range(100):
        if scope.messages:
            break
        await asyncio.sleep(0.01)

    assert _ids(scope) == ["m1"]
    assert scope.is_polling
    assert [m.body for m in env.received] == ["polled"]
    await scope.close()


async def test_broken_stream_falls_back_to_polling() -> None:
    env = _Env()
    scope = await env.open(poll_interval=0.01)
    env.channel.subscriptions[0].break_stream()
    await settle()
    assert scope.is_polling

    env.messages.add("s1", "u1", "u2", "after break")
    for _ in range(100):
        if scope.messages:
            break
        await asyncio.sleep(0.01)
    assert [m.body for m in scope.messages] == ["after break"]
    await scope.close()


async def test_no_channel_polls() -> None:
    env = _Env(with_channel=False)
    scope = await env.open(poll_interval=0.01)
    await settle()
    assert scope.is_polling
    await scope.close()


async def test_message_sent_while_loading_is_not_lost() -> None:
    """A peer insert that lands between the load query and its return still shows up."""
    env = _Env()
    peer_service = MessageService(env.messages, env.profiles, channel=env.channel)
    load = env.service.list_conversation
    sent: list[MessageResult] = []

    async def load_then_peer_sends(*args, **kwargs) -> list[MessageResult]:
        rows = await load(*args, **kwargs)
        if not sent:
            sent.append(await peer_service.send_message("s1", "u2", "u1", "during load"))
        return rows

    env.service.list_conversation = load_then_peer_sends
    scope = await env.open()
    await settle(50)

    assert _ids(scope) == [sent[0].id]
    assert not scope.is_polling
    await scope.close()


async def test_load_keeps_rows_already_merged() -> None:
    env = _Env()
    env.messages.add("s1", "u2", "u1", "stored")
    scope = await env.open()
    live_only = env.messages.next_message("s1", "u2", "u1", "not stored yet")
    await scope.apply_event(live_only.to_dict())

    await scope.load()

    assert _ids(scope) == ["m1", live_only.id]
    await scope.close()


async def test_failed_initial_load_closes_subscription() -> None:
    env = _Env()
    env.messages.fail_list = unavailable_store()
    scope = ConversationScope(env.service, env.channel, school_id="s1", me="u1", peer="u2")

    with pytest.raises(StoreUnavailableException):
        await scope.start()

    assert scope.closed
    assert env.channel.open_subscriptions == []


async def test_load_reads_whole_conversation_past_one_page() -> None:
    env = _Env()
    for n in range(205):
        env.messages.add("s1", "u2" if n % 2 else "u1", "u1" if n % 2 else "u2", f"msg {n}")
    scope = ConversationScope(
        env.service, env.channel, school_id="s1", me="u1", peer="u2", page_size=50
    )
    await scope.start()

    assert len(scope.messages) == 205
    assert _ids(scope)[-1] == "m205"
    assert env.messages.page_sizes == [50]
    await scope.close()


async def test_polling_reaches_messages_past_one_page() -> None:
    env = _Env(with_channel=False)
    for _ in range(200):
        env.messages.add("s1", "u2", "u1", "old")
    scope = await env.open(poll_interval=0.01)
    for _ in range(5):
        env.messages.add("s1", "u2", "u1", "new")

    for _ in range(100):
        if len(scope.messages) == 205:
            break
        await asyncio.sleep(0.01)

    assert _ids(scope)[-1] == "m205"
    assert [m.body for m in env.received] == ["new"] * 5
    await scope.close()


async def test_failing_delivery_closes_conversation() -> None:
    env = _Env()
    env.on_message = AsyncMock(side_effect=RuntimeError("socket gone"))
    scope = await env.open()
    [subscription] = env.channel.subscriptions
    peer_service = MessageService(env.messages, env.profiles, channel=env.channel)

    sent = await peer_service.send_message("s1", "u2", "u1", "from peer")
    await settle()

    env.on_message.assert_awaited_once_with(sent)
    assert scope.closed
    assert subscription.closed
    assert env.channel.open_subscriptions == []


class TestMessageSynchronizer:
    async def test_open_closes_previous_conversation(self) -> None:
        env = _Env()
        sync = MessageSynchronizer(env.service, env.channel)

        first = await sync.open("s1", "u1", "u2")
        second = await sync.open("s1", "u1", "u3")

        assert first.closed
        assert not second.closed
        assert sync.current is second
        assert len(env.channel.open_subscriptions) == 1
        await sync.close()
        assert sync.current is None
        assert env.channel.open_subscriptions == []

    async def test_events_for_previous_peer_not_delivered(self) -> None:
        env = _Env()
        sync = MessageSynchronizer(env.service, env.channel)
        await sync.open("s1", "u1", "u2", on_message=env.on_message)
        scope = await sync.open("s1", "u1", "u3", on_message=env.on_message)

        peer_service = MessageService(env.messages, env.profiles, channel=env.channel)
        await peer_service.send_message("s1", "u2", "u1", "for old conversation")
        await settle()

        assert scope.messages == []
        assert env.received == []
        await sync.close()
