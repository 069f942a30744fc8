"""In-memory test doubles for the store, realtime bus and auth provider.

Every async method yields to the event loop first so concurrent callers
interleave the way they do against the real store.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from typing import Any

from schoolhub.application.dtos.identity import Identity
from schoolhub.application.dtos.message import MessageResult
from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.application.dtos.school import SchoolResult
from schoolhub.domain.enums import UserRole
from schoolhub.domain.exceptions import (
    AuthorizationDeniedException,
    JoinCodeTakenException,
    PrivilegedLookupUnavailableException,
    RealtimeUnavailableException,
    StoreUnavailableException,
)
from schoolhub.domain.value_objects import ConversationKey

T0 = datetime(2025, 1, 6, 8, 0, tzinfo=UTC)


async def settle(rounds: int = 20) -> None:
    """Let background tasks (consumers, callbacks) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class StaticIdentityProvider:
    def __init__(self, identity: Identity | None) -> None:
        self.identity = identity

    async def get_current_identity(self) -> Identity | None:
        await asyncio.sleep(0)
        return self.identity


class InMemoryProfileRepository:
    """Profiles keyed on identity id. deny_* sets simulate row-level policy rejections."""

    def __init__(self) -> None:
        self.profiles: dict[str, ProfileResult] = {}
        self.deny_read: set[str] = set()
        self.deny_create: set[str] = set()
        self.fail_link: Exception | None = None
        self.create_attempts = 0

    def add(self, profile: ProfileResult) -> ProfileResult:
        self.profiles[profile.id] = profile
        return profile

    async def get_by_id(self, profile_id: str) -> ProfileResult | None:
        await asyncio.sleep(0)
        if profile_id in self.deny_read:
            raise AuthorizationDeniedException("profiles.get")
        return self.profiles.get(profile_id)

    async def create_if_absent(self, profile_id: str, full_name: str) -> bool:
        self.create_attempts += 1
        await asyncio.sleep(0)
        if profile_id in self.deny_create:
            raise AuthorizationDeniedException("profiles.create")
        if profile_id in self.profiles:
            return False
        self.profiles[profile_id] = ProfileResult(id=profile_id, full_name=full_name)
        return True

    async def set_role(self, profile_id: str, role: UserRole, full_name: str) -> ProfileResult:
        await asyncio.sleep(0)
        return self._upsert(profile_id, full_name, role=role)

    async def link_school(
        self, profile_id: str, school_id: str, role: UserRole, full_name: str
    ) -> ProfileResult:
        await asyncio.sleep(0)
        if self.fail_link is not None:
            raise self.fail_link
        return self._upsert(profile_id, full_name, role=role, school_id=school_id)

    def _upsert(self, profile_id: str, full_name: str, **fields: Any) -> ProfileResult:
        current = self.profiles.get(profile_id) or ProfileResult(id=profile_id, full_name="")
        if full_name:
            fields["full_name"] = full_name
        updated = dataclasses.replace(current, **fields)
        self.profiles[profile_id] = updated
        return updated


class InMemorySchoolRepository:
    """Schools plus join code reservations (code -> school id)."""

    def __init__(self) -> None:
        self.schools: dict[str, SchoolResult] = {}
        self.codes: dict[str, str] = {}
        self.deny_query = False
        self.create_attempts = 0

    def add(self, school_id: str, join_code: str, name: str = "School") -> SchoolResult:
        school = SchoolResult(id=school_id, name=name, region="North", join_code=join_code)
        self.schools[school_id] = school
        self.codes[join_code] = school_id
        return school

    async def create_school(
        self,
        school_id: str,
        name: str,
        region: str,
        join_code: str,
        address: str | None = None,
    ) -> SchoolResult:
        self.create_attempts += 1
        await asyncio.sleep(0)
        if join_code in self.codes:
            raise JoinCodeTakenException(join_code)
        school = SchoolResult(
            id=school_id,
            name=name,
            region=region,
            join_code=join_code,
            address=address,
            created_at=T0,
        )
        self.codes[join_code] = school_id
        self.schools[school_id] = school
        return school

    async def get_by_id(self, school_id: str) -> SchoolResult | None:
        await asyncio.sleep(0)
        return self.schools.get(school_id)

    async def find_ids_by_code(self, join_code: str) -> list[str]:
        await asyncio.sleep(0)
        if self.deny_query:
            raise AuthorizationDeniedException("schools.find_by_code")
        return [s.id for s in self.schools.values() if s.join_code == join_code]

    async def delete_school(self, school_id: str, join_code: str | None = None) -> None:
        await asyncio.sleep(0)
        school = self.schools.pop(school_id, None)
        code = join_code or (school.join_code if school else None)
        if code is not None:
            self.codes.pop(code, None)


class InMemoryCodeLookup:
    """Privileged lookup over the reservation map; available=False simulates no service account."""

    def __init__(self, schools: InMemorySchoolRepository, available: bool = True) -> None:
        self.schools = schools
        self.available = available
        self.calls: list[str] = []

    async def find_school_id_by_code(self, join_code: str) -> str | None:
        self.calls.append(join_code)
        await asyncio.sleep(0)
        if not self.available:
            raise PrivilegedLookupUnavailableException("not provisioned")
        return self.schools.codes.get(join_code)


class InMemoryMessageRepository:
    """Messages with store-assigned ids (m1, m2, ...) and increasing created_at."""

    def __init__(self) -> None:
        self.messages: list[MessageResult] = []
        self.fail_create: Exception | None = None
        self.fail_list: Exception | None = None
        self.list_calls = 0
        self.page_sizes: list[int] = []
        self._seq = 0

    def next_message(
        self, school_id: str, sender_id: str, receiver_id: str, body: str
    ) -> MessageResult:
        """Build (without storing) the next message, as another client's insert would."""
        self._seq += 1
        return MessageResult(
            id=f"m{self._seq}",
            school_id=school_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            body=body,
            created_at=T0 + timedelta(seconds=self._seq),
        )

    def add(self, school_id: str, sender_id: str, receiver_id: str, body: str) -> MessageResult:
        message = self.next_message(school_id, sender_id, receiver_id, body)
        self.messages.append(message)
        return message

    async def list_conversation(
        self, school_id: str, key: ConversationKey, page_size: int = 200
    ) -> list[MessageResult]:
        self.list_calls += 1
        self.page_sizes.append(page_size)
        await asyncio.sleep(0)
        if self.fail_list is not None:
            raise self.fail_list
        rows = [
            m
            for m in self.messages
            if m.school_id == school_id and key.includes_pair(m.sender_id, m.receiver_id)
        ]
        return sorted(rows, key=lambda m: m.sort_key)

    async def create_message(
        self, school_id: str, sender_id: str, receiver_id: str, body: str
    ) -> MessageResult:
        await asyncio.sleep(0)
        if self.fail_create is not None:
            raise self.fail_create
        return self.add(school_id, sender_id, receiver_id, body)


_CLOSED = object()


class FakeSubscription:
    def __init__(self, channel: str) -> None:
        self.channel = channel
        self.closed = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, row: dict[str, Any]) -> None:
        if not self.closed:
            self._queue.put_nowait(row)

    def break_stream(self) -> None:
        self._queue.put_nowait(RealtimeUnavailableException("connection reset"))

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSED)


class InMemoryRealtimeChannel:
    """Pub/sub over in-process queues; fail_subscribe simulates an unreachable bus."""

    def __init__(self) -> None:
        self.subscriptions: list[FakeSubscription] = []
        self.published: list[tuple[str, dict[str, Any]]] = []
        self.fail_subscribe = False
        self.available = True

    @staticmethod
    def _name(school_id: str, table: str, event: str) -> str:
        return f"{school_id}:{table}:{event}"

    @property
    def open_subscriptions(self) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if not s.closed]

    async def subscribe(self, school_id: str, table: str, event: str) -> FakeSubscription:
        await asyncio.sleep(0)
        if self.fail_subscribe:
            raise RealtimeUnavailableException("redis not connected")
        sub = FakeSubscription(self._name(school_id, table, event))
        self.subscriptions.append(sub)
        return sub

    async def publish(self, school_id: str, table: str, event: str, row: dict[str, Any]) -> bool:
        await asyncio.sleep(0)
        if not self.available:
            return False
        name = self._name(school_id, table, event)
        self.published.append((name, row))
        for sub in self.open_subscriptions:
            if sub.channel == name:
                sub.push(row)
        return True


def unavailable_store() -> StoreUnavailableException:
    return StoreUnavailableException("messages.create", "ConnectError: connection refused")
