"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs or domain types only; no infrastructure imports.
Implementations raise AuthorizationDeniedException when a row-level policy
rejects the call and StoreUnavailableException for every other store failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from schoolhub.application.dtos.message import MessageResult
    from schoolhub.application.dtos.profile import ProfileResult
    from schoolhub.application.dtos.school import SchoolResult
    from schoolhub.domain.enums import UserRole
    from schoolhub.domain.value_objects import ConversationKey


# Profile repository interface
class IProfileRepository(Protocol):
    """Protocol for profile persistence, keyed on the identity id."""

    async def get_by_id(self, profile_id: str) -> ProfileResult | None:
        """Return profile by ID, or None if no row exists."""

    async def create_if_absent(self, profile_id: str, full_name: str) -> bool:
        """Insert an empty profile; a row that already exists is left untouched. Return True if created."""

    async def set_role(
        self, profile_id: str, role: UserRole, full_name: str
    ) -> ProfileResult:
        """Upsert role and display name (conflict-safe, idempotent)."""

    async def link_school(
        self, profile_id: str, school_id: str, role: UserRole, full_name: str
    ) -> ProfileResult:
        """Upsert school_id, role and display name (conflict-safe, idempotent)."""


# School repository interface
class ISchoolRepository(Protocol):
    """Protocol for school persistence and join code reservations."""

    async def create_school(
        self,
        school_id: str,
        name: str,
        region: str,
        join_code: str,
        address: str | None = None,
    ) -> SchoolResult:
        """Reserve join_code and insert the school. Raise JoinCodeTakenException if the code is reserved."""

    async def get_by_id(self, school_id: str) -> SchoolResult | None:
        """Return school by ID."""

    async def find_ids_by_code(self, join_code: str) -> list[str]:
        """Return IDs of schools whose join_code equals join_code (caller-scoped, exact match)."""

    async def delete_school(self, school_id: str, join_code: str | None = None) -> None:
        """Delete school and release its join code reservation (compensating action)."""


# Privileged join code lookup interface
class ISchoolCodeLookup(Protocol):
    """Protocol for the privileged join code lookup (bypasses per-row policies)."""

    async def find_school_id_by_code(self, join_code: str) -> str | None:
        """Return the school ID reserved for join_code, or None.

        Raise PrivilegedLookupUnavailableException when the lookup is not provisioned.
        """


# Message repository interface
class IMessageRepository(Protocol):
    """Protocol for direct message persistence (messages are immutable)."""

    async def list_conversation(
        self, school_id: str, key: ConversationKey, page_size: int = 200
    ) -> list[MessageResult]:
        """Return every message between the pair in school, ascending by created_at.

        The store is read page_size rows at a time.
        """

    async def create_message(
        self, school_id: str, sender_id: str, receiver_id: str, body: str
    ) -> MessageResult:
        """Insert a message; the store assigns id and created_at."""
