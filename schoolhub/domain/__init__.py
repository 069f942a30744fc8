"""Domain layer: value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from schoolhub.domain.enums import OnboardingState, UserRole
from schoolhub.domain.exceptions import (
    AuthenticationException,
    AuthorizationDeniedException,
    AuthorizationException,
    ResourceNotFoundException,
    SchoolHubException,
    ValidationException,
)
from schoolhub.domain.value_objects import ConversationKey, JoinCode

__all__ = [
    "AuthenticationException",
    "AuthorizationDeniedException",
    "AuthorizationException",
    "ConversationKey",
    "JoinCode",
    "OnboardingState",
    "ResourceNotFoundException",
    "SchoolHubException",
    "UserRole",
    "ValidationException",
]
