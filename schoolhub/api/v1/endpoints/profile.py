"""Profile API: who the caller is and where onboarding stands."""

from typing import Annotated

from fastapi import APIRouter, Depends

from schoolhub.api.v1.dependencies import get_profile_resolver
from schoolhub.application.services.onboarding_service import derive_onboarding_state
from schoolhub.application.services.profile_resolver import ProfileResolver
from schoolhub.schemas.profile import MeResponse, ProfileResponse

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def get_me(
    resolver: Annotated[ProfileResolver, Depends(get_profile_resolver)],
) -> MeResponse:
    """Resolve the caller; creates the profile on first sign-in."""
    resolved = await resolver.resolve()
    identity = resolved.identity
    return MeResponse(
        authenticated=identity is not None,
        identity_id=identity.id if identity else None,
        email=identity.email if identity else None,
        profile=ProfileResponse.from_result(resolved.profile) if resolved.profile else None,
        onboarding_state=derive_onboarding_state(identity, resolved.profile),
    )
