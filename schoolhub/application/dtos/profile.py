"""DTOs for profile use cases (no dependency on the store)."""

from __future__ import annotations

from dataclasses import dataclass

from schoolhub.application.dtos.identity import Identity
from schoolhub.domain.enums import UserRole


@dataclass(frozen=True)
class ProfileResult:
    """Profile read-model (one per identity)."""

    id: str
    full_name: str
    role: UserRole | None = None
    school_id: str | None = None
    phone: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class ResolvedProfile:
    """Result of ProfileResolver.resolve().

    identity None: caller must sign in. profile None with an identity:
    the profile is inaccessible (policy rejection) or not created yet.
    """

    identity: Identity | None
    profile: ProfileResult | None


@dataclass(frozen=True)
class ProfileContext:
    """What provisioning needs to know about the caller, even when the profile row is unreadable."""

    id: str
    full_name: str
    role: UserRole | None = None
    school_id: str | None = None

    @classmethod
    def from_resolved(cls, identity: Identity, profile: ProfileResult | None) -> ProfileContext:
        """Build from a resolver result; falls back to identity claims when profile is None."""
        if profile is None:
            return cls(id=identity.id, full_name=identity.fallback_display_name())
        return cls(
            id=profile.id,
            full_name=(profile.full_name or "").strip(),
            role=profile.role,
            school_id=profile.school_id,
        )
