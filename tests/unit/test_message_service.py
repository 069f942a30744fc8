"""Tests for MessageService: validation, same-school receivers and insert event publishing."""

import pytest

from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.application.services.message_service import MessageService
from schoolhub.domain.enums import UserRole
from schoolhub.domain.exceptions import ResourceNotFoundException, ValidationException
from tests.fakes import (
    InMemoryMessageRepository,
    InMemoryProfileRepository,
    InMemoryRealtimeChannel,
)


def _setup(channel: InMemoryRealtimeChannel | None = None, max_length: int = 2000):
    profiles = InMemoryProfileRepository()
    profiles.add(ProfileResult(id="u1", full_name="A", role=UserRole.TEACHER, school_id="s1"))
    profiles.add(ProfileResult(id="u2", full_name="B", role=UserRole.PARENT, school_id="s1"))
    profiles.add(ProfileResult(id="u3", full_name="C", role=UserRole.PARENT, school_id="s2"))
    messages = InMemoryMessageRepository()
    service = MessageService(messages, profiles, channel=channel, max_length=max_length)
    return service, messages


async def test_send_inserts_and_publishes() -> None:
    channel = InMemoryRealtimeChannel()
    service, messages = _setup(channel)

    sent = await service.send_message("s1", "u1", "u2", "  Hello <i>there</i> ")

    assert sent.body == "Hello there"
    assert messages.messages == [sent]
    assert channel.published == [("s1:messages:INSERT", sent.to_dict())]


async def test_send_without_channel() -> None:
    service, messages = _setup(channel=None)
    await service.send_message("s1", "u1", "u2", "Hi")
    assert len(messages.messages) == 1


async def test_publish_failure_does_not_fail_send() -> None:
    channel = InMemoryRealtimeChannel()
    channel.available = False
    service, messages = _setup(channel)
    sent = await service.send_message("s1", "u1", "u2", "Hi")
    assert messages.messages == [sent]
    assert channel.published == []


@pytest.mark.parametrize("body", ["", "   ", "<b></b>"])
async def test_blank_body_rejected(body: str) -> None:
    service, messages = _setup()
    with pytest.raises(ValidationException, match="body is required"):
        await service.send_message("s1", "u1", "u2", body)
    assert messages.messages == []


async def test_too_long_body_rejected() -> None:
    service, _ = _setup(max_length=5)
    with pytest.raises(ValidationException, match="must not exceed 5"):
        await service.send_message("s1", "u1", "u2", "123456")


async def test_cannot_message_self() -> None:
    service, _ = _setup()
    with pytest.raises(ValidationException) as exc_info:
        await service.send_message("s1", "u1", "u1", "Hi")
    assert exc_info.value.details == {"field": "receiver_id"}


@pytest.mark.parametrize("receiver", ["u3", "nobody"])
async def test_receiver_must_be_in_same_school(receiver: str) -> None:
    service, messages = _setup()
    with pytest.raises(ResourceNotFoundException):
        await service.send_message("s1", "u1", receiver, "Hi")
    assert messages.messages == []


async def test_list_conversation_both_directions_sorted() -> None:
    service, messages = _setup()
    first = messages.add("s1", "u1", "u2", "one")
    messages.add("s1", "u1", "u3", "other pair")
    second = messages.add("s1", "u2", "u1", "two")
    messages.add("s2", "u1", "u2", "other school")

    rows = await service.list_conversation("s1", "u2", "u1")

    assert rows == [first, second]


async def test_list_conversation_returns_more_than_one_page() -> None:
    service, messages = _setup()
    for _ in range(7):
        messages.add("s1", "u1", "u2", "again")

    rows = await service.list_conversation("s1", "u1", "u2", page_size=3)

    assert [m.id for m in rows] == [f"m{n}" for n in range(1, 8)]
    assert messages.page_sizes == [3]
