"""Service interfaces (ports) for the application layer.

Protocols define contracts for the external collaborators consumed by the
core: the auth provider and the realtime fan-out bus (DIP).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from schoolhub.application.dtos.identity import Identity


# Identity provider interface
class IIdentityProvider(Protocol):
    """Protocol for the current caller (auth provider session)."""

    async def get_current_identity(self) -> Identity | None:
        """Return the authenticated identity, or None when signed out."""


# Token verifier interface
class ITokenVerifier(Protocol):
    """Protocol for verifying a bearer token issued by the auth provider."""

    async def verify(self, token: str) -> Identity:
        """Return the identity carried by token. Raise AuthenticationException if invalid or expired."""


# Realtime subscription
class RealtimeSubscription(Protocol):
    """An open subscription: async iterator of inserted rows (dicts) plus close()."""

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        """Iterate rows as they are published; ends when closed."""

    async def close(self) -> None:
        """Unsubscribe and release the connection. Idempotent."""


# Realtime channel interface
class IRealtimeChannel(Protocol):
    """Protocol for school-scoped insert notifications (pub/sub)."""

    async def subscribe(
        self, school_id: str, table: str, event: str
    ) -> RealtimeSubscription:
        """Open a subscription. Raise RealtimeUnavailableException if the bus cannot be reached."""

    async def publish(
        self, school_id: str, table: str, event: str, row: dict[str, Any]
    ) -> bool:
        """Publish an event row. Return False if the bus is unavailable (best-effort)."""
