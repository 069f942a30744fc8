"""DTOs for the onboarding state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from schoolhub.application.dtos.profile import ProfileResult
from schoolhub.domain.enums import OnboardingState
from schoolhub.domain.exceptions import SchoolHubException


@dataclass(frozen=True)
class OnboardingError:
    """Fault caught by the state machine; shown to the caller, state not advanced."""

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: SchoolHubException) -> OnboardingError:
        return cls(error_code=exc.error_code, message=exc.message, details=dict(exc.details))


@dataclass(frozen=True)
class OnboardingOutcome:
    """Current onboarding state after a load or a submitted step."""

    state: OnboardingState
    redirect_to: str
    profile: ProfileResult | None = None
    join_code: str | None = None
    error: OnboardingError | None = None
