"""Application DTOs (no store dependency)."""

from schoolhub.application.dtos.identity import Identity
from schoolhub.application.dtos.message import MessageResult
from schoolhub.application.dtos.onboarding import OnboardingError, OnboardingOutcome
from schoolhub.application.dtos.profile import (
    ProfileContext,
    ProfileResult,
    ResolvedProfile,
)
from schoolhub.application.dtos.school import ProvisioningResult, SchoolResult

__all__ = [
    "Identity",
    "MessageResult",
    "OnboardingError",
    "OnboardingOutcome",
    "ProfileContext",
    "ProfileResult",
    "ProvisioningResult",
    "ResolvedProfile",
    "SchoolResult",
]
