"""Pydantic request/response schemas for the API."""

from schoolhub.schemas.health import HealthResponse, ReadinessResponse
from schoolhub.schemas.message import (
    ConversationResponse,
    MessageCreateRequest,
    MessageResponse,
)
from schoolhub.schemas.onboarding import (
    JoinSchoolRequest,
    OnboardingResponse,
    RoleSelectRequest,
    SchoolCreateRequest,
)
from schoolhub.schemas.profile import MeResponse, ProfileResponse

__all__ = [
    "ConversationResponse",
    "HealthResponse",
    "JoinSchoolRequest",
    "MeResponse",
    "MessageCreateRequest",
    "MessageResponse",
    "OnboardingResponse",
    "ProfileResponse",
    "ReadinessResponse",
    "RoleSelectRequest",
    "SchoolCreateRequest",
]
