"""Onboarding state machine: unauthenticated -> role_unset -> creating/joining -> ready.

The state is never stored. It is derived from (identity, profile) on every
load, so a reload or a second tab always lands on the right step.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable
from urllib.parse import quote, urlsplit

from schoolhub.application.dtos.identity import Identity
from schoolhub.application.dtos.onboarding import OnboardingError, OnboardingOutcome
from schoolhub.application.dtos.profile import (
    ProfileContext,
    ProfileResult,
    ResolvedProfile,
)
from schoolhub.application.dtos.school import ProvisioningResult
from schoolhub.application.services.profile_resolver import ProfileResolver
from schoolhub.application.services.school_provisioning_service import (
    SchoolProvisioningService,
)
from schoolhub.core.constants import ROUTE_DASHBOARD, ROUTE_LOGIN, ROUTE_ONBOARDING
from schoolhub.domain.enums import OnboardingState, UserRole
from schoolhub.domain.exceptions import (
    AuthenticationException,
    InvalidOnboardingTransitionException,
    SchoolHubException,
)
from schoolhub.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_CHOOSE_ROLE_FROM = frozenset(
    {
        OnboardingState.ROLE_UNSET,
        OnboardingState.CREATING_TENANT,
        OnboardingState.JOINING_TENANT,
    }
)
_SUBMIT_SCHOOL_FROM = frozenset({OnboardingState.ROLE_UNSET, OnboardingState.CREATING_TENANT})
_SUBMIT_JOIN_CODE_FROM = frozenset({OnboardingState.ROLE_UNSET, OnboardingState.JOINING_TENANT})


def derive_onboarding_state(
    identity: Identity | None, profile: ProfileResult | None
) -> OnboardingState:
    """Pure function of (identity, profile). An unreadable profile (None) derives role_unset."""
    if identity is None:
        return OnboardingState.UNAUTHENTICATED
    if profile is None or profile.role is None:
        return OnboardingState.ROLE_UNSET
    if profile.school_id is not None:
        return OnboardingState.READY
    match profile.role:
        case UserRole.SCHOOL_ADMIN:
            return OnboardingState.CREATING_TENANT
        case UserRole.TEACHER | UserRole.STUDENT | UserRole.PARENT | UserRole.AUTHORITY_ADMIN:
            return OnboardingState.JOINING_TENANT


def is_safe_next_path(next_path: str | None) -> bool:
    """Only same-origin relative paths are followed after sign-in."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return False
    if "\\" in next_path:
        return False
    parts = urlsplit(next_path)
    return not parts.scheme and not parts.netloc


def resolve_redirect(state: OnboardingState, next_path: str | None = None) -> str:
    """Where the browser goes for a derived state."""
    match state:
        case OnboardingState.UNAUTHENTICATED:
            target = next_path if is_safe_next_path(next_path) else ROUTE_ONBOARDING
            return f"{ROUTE_LOGIN}?next={quote(target, safe='/')}"
        case OnboardingState.ROLE_UNSET | OnboardingState.CREATING_TENANT | OnboardingState.JOINING_TENANT:
            return ROUTE_ONBOARDING
        case OnboardingState.READY:
            return next_path if is_safe_next_path(next_path) else ROUTE_DASHBOARD


class OnboardingService:
    """Drives onboarding steps for the current caller.

    Every operation re-runs the resolver first. Faults raised by a step
    are caught and returned in the outcome with the state unchanged.
    """

    def __init__(
        self,
        resolver: ProfileResolver,
        provisioning: SchoolProvisioningService,
    ) -> None:
        self.resolver = resolver
        self.provisioning = provisioning

    async def current(self, next_path: str | None = None) -> OnboardingOutcome:
        resolved = await self.resolver.resolve()
        state = derive_onboarding_state(resolved.identity, resolved.profile)
        return OnboardingOutcome(
            state=state,
            redirect_to=resolve_redirect(state, next_path),
            profile=resolved.profile,
        )

    async def choose_role(self, role: UserRole) -> OnboardingOutcome:
        async def step(context: ProfileContext, resolved: ResolvedProfile) -> OnboardingOutcome:
            updated = await self.provisioning.select_role(context, role)
            state = derive_onboarding_state(resolved.identity, updated)
            return OnboardingOutcome(state=state, redirect_to=resolve_redirect(state), profile=updated)

        return await self._submit("choose_role", _CHOOSE_ROLE_FROM, step)

    async def submit_school(
        self, name: str, region: str, address: str | None = None
    ) -> OnboardingOutcome:
        async def step(context: ProfileContext, resolved: ResolvedProfile) -> OnboardingOutcome:
            result = await self.provisioning.create_school(context, name, region, address)
            return _linked_outcome(context, resolved, result)

        return await self._submit("submit_school", _SUBMIT_SCHOOL_FROM, step)

    async def submit_join_code(self, code: str) -> OnboardingOutcome:
        async def step(context: ProfileContext, resolved: ResolvedProfile) -> OnboardingOutcome:
            result = await self.provisioning.join_school(context, code)
            return _linked_outcome(context, resolved, result)

        return await self._submit("submit_join_code", _SUBMIT_JOIN_CODE_FROM, step)

    async def _submit(
        self,
        action: str,
        allowed_from: frozenset[OnboardingState],
        step: Callable[[ProfileContext, ResolvedProfile], Awaitable[OnboardingOutcome]],
    ) -> OnboardingOutcome:
        resolved = await self.resolver.resolve()
        state = derive_onboarding_state(resolved.identity, resolved.profile)
        redirect_to = resolve_redirect(state)

        if state is OnboardingState.READY:
            return OnboardingOutcome(state=state, redirect_to=redirect_to, profile=resolved.profile)

        if resolved.identity is None:
            error: SchoolHubException = AuthenticationException("Sign in to continue onboarding")
        elif state not in allowed_from:
            error = InvalidOnboardingTransitionException(state.value, action)
        else:
            context = ProfileContext.from_resolved(resolved.identity, resolved.profile)
            try:
                return await step(context, resolved)
            except SchoolHubException as e:
                logger.warning(
                    "Onboarding step %s failed in state %s: %s (%s)",
                    action,
                    state.value,
                    e.error_code,
                    e.message,
                )
                error = e

        return OnboardingOutcome(
            state=state,
            redirect_to=redirect_to,
            profile=resolved.profile,
            error=OnboardingError.from_exception(error),
        )


def _linked_outcome(
    context: ProfileContext,
    resolved: ResolvedProfile,
    result: ProvisioningResult,
) -> OnboardingOutcome:
    base = resolved.profile or ProfileResult(id=context.id, full_name=context.full_name)
    linked = dataclasses.replace(base, role=result.role, school_id=result.school_id)
    return OnboardingOutcome(
        state=derive_onboarding_state(resolved.identity, linked),
        redirect_to=result.redirect_to,
        profile=linked,
        join_code=result.join_code,
    )
