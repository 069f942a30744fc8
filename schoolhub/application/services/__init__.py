"""Application services: profile resolution, provisioning, onboarding, messaging."""

from schoolhub.application.services.message_service import MessageService
from schoolhub.application.services.onboarding_service import (
    OnboardingService,
    derive_onboarding_state,
    resolve_redirect,
)
from schoolhub.application.services.profile_resolver import ProfileResolver
from schoolhub.application.services.school_provisioning_service import (
    SchoolProvisioningService,
)

__all__ = [
    "MessageService",
    "OnboardingService",
    "ProfileResolver",
    "SchoolProvisioningService",
    "derive_onboarding_state",
    "resolve_redirect",
]
