"""Profile API schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.domain.enums import OnboardingState, UserRole


class ProfileResponse(BaseModel):
    """Profile as seen by its owner."""

    id: str
    full_name: str
    role: UserRole | None = None
    school_id: str | None = None
    phone: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_result(cls, profile: ProfileResult) -> ProfileResponse:
        return cls(
            id=profile.id,
            full_name=profile.full_name,
            role=profile.role,
            school_id=profile.school_id,
            phone=profile.phone,
            avatar_url=profile.avatar_url,
        )


class MeResponse(BaseModel):
    """Response for GET /profile/me: who the caller is and how far onboarding got.

    profile is null when signed out, or when the profile exists but is not
    readable yet (no school linked).
    """

    authenticated: bool
    identity_id: str | None = None
    email: str | None = None
    profile: ProfileResponse | None = None
    onboarding_state: OnboardingState = Field(..., description="Derived onboarding state")
