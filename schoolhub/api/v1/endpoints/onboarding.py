"""Onboarding API: thin routes delegating to OnboardingService.

Every route answers with the onboarding state. A failed step keeps the
previous state, carries the error and uses the error's HTTP status.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from schoolhub.api.v1.dependencies import get_onboarding_service
from schoolhub.application.dtos.onboarding import OnboardingOutcome
from schoolhub.application.services.onboarding_service import OnboardingService
from schoolhub.core.exception_handlers import status_for_error_code
from schoolhub.core.limiter import (
    limit_create_school,
    limit_join_school,
    limit_onboarding_writes,
)
from schoolhub.schemas.onboarding import (
    JoinSchoolRequest,
    OnboardingResponse,
    RoleSelectRequest,
    SchoolCreateRequest,
)

router = APIRouter()


def _to_response(outcome: OnboardingOutcome, response: Response) -> OnboardingResponse:
    if outcome.error is not None:
        response.status_code = status_for_error_code(outcome.error.error_code)
    return OnboardingResponse.from_outcome(outcome)


@router.get("", response_model=OnboardingResponse)
async def get_onboarding(
    onboarding: Annotated[OnboardingService, Depends(get_onboarding_service)],
    next_path: Annotated[str | None, Query(alias="next", max_length=2048)] = None,
) -> OnboardingResponse:
    """Current state and where to send the browser (login, onboarding or next/dashboard)."""
    return OnboardingResponse.from_outcome(await onboarding.current(next_path))


@router.post("/role", response_model=OnboardingResponse)
@limit_onboarding_writes
async def choose_role(
    request: Request,
    response: Response,
    body: RoleSelectRequest,
    onboarding: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingResponse:
    """Persist the chosen role; school_admin continues to create a school, others to join one."""
    return _to_response(await onboarding.choose_role(body.role), response)


@router.post("/school", response_model=OnboardingResponse)
@limit_create_school
async def create_school(
    request: Request,
    response: Response,
    body: SchoolCreateRequest,
    onboarding: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingResponse:
    """Create a school with a generated join code and link the caller as its admin."""
    outcome = await onboarding.submit_school(body.name, body.region, body.address)
    return _to_response(outcome, response)


@router.post("/join", response_model=OnboardingResponse)
@limit_join_school
async def join_school(
    request: Request,
    response: Response,
    body: JoinSchoolRequest,
    onboarding: Annotated[OnboardingService, Depends(get_onboarding_service)],
) -> OnboardingResponse:
    """Link the caller to the school owning the join code."""
    return _to_response(await onboarding.submit_join_code(body.code), response)
