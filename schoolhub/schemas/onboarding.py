"""Onboarding API schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from schoolhub.application.dtos.onboarding import OnboardingOutcome
from schoolhub.domain.enums import OnboardingState, UserRole
from schoolhub.schemas.profile import ProfileResponse


class RoleSelectRequest(BaseModel):
    """Request body for POST /onboarding/role."""

    role: UserRole


class SchoolCreateRequest(BaseModel):
    """Request body for POST /onboarding/school (school admins). Name and region are required."""

    name: str = Field(..., max_length=255, description="School display name")
    region: str = Field(..., max_length=255, description="Region or district")
    address: str | None = Field(default=None, max_length=500)


class JoinSchoolRequest(BaseModel):
    """Request body for POST /onboarding/join. Case and separators are ignored (al-noor1 == ALNOOR1)."""

    code: str = Field(..., max_length=64, description="School join code")


class OnboardingErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class OnboardingResponse(BaseModel):
    """Onboarding state after a load or a submitted step.

    On failure error is set and state is the unchanged state before the step.
    """

    state: OnboardingState
    redirect_to: str
    profile: ProfileResponse | None = None
    join_code: str | None = None
    error: OnboardingErrorResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: OnboardingOutcome) -> OnboardingResponse:
        return cls(
            state=outcome.state,
            redirect_to=outcome.redirect_to,
            profile=ProfileResponse.from_result(outcome.profile) if outcome.profile else None,
            join_code=outcome.join_code,
            error=(
                OnboardingErrorResponse(
                    error=outcome.error.error_code,
                    message=outcome.error.message,
                    details=outcome.error.details,
                )
                if outcome.error
                else None
            ),
        )
