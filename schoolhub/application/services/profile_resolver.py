"""Profile resolution: current identity + its profile, creating the profile on first sign-in."""

from __future__ import annotations

from schoolhub.application.dtos.identity import Identity
from schoolhub.application.dtos.profile import ProfileResult, ResolvedProfile
from schoolhub.application.interfaces.repositories import IProfileRepository
from schoolhub.application.interfaces.services import IIdentityProvider
from schoolhub.domain.exceptions import AuthorizationDeniedException
from schoolhub.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class ProfileResolver:
    """Resolves (identity, profile) for the current caller.

    Authorization-denied reads are expected absence for callers whose
    row-level policies do not yet admit them (no school linked); they
    resolve to a None profile instead of raising. Any other store error
    propagates.
    """

    def __init__(
        self,
        identity_provider: IIdentityProvider,
        profile_repo: IProfileRepository,
    ) -> None:
        self.identity_provider = identity_provider
        self.profile_repo = profile_repo

    async def resolve(self) -> ResolvedProfile:
        identity = await self.identity_provider.get_current_identity()
        if identity is None:
            return ResolvedProfile(identity=None, profile=None)

        try:
            profile = await self.profile_repo.get_by_id(identity.id)
        except AuthorizationDeniedException:
            logger.debug("Profile read denied for %s", identity.id)
            return ResolvedProfile(identity=identity, profile=None)
        if profile is not None:
            return ResolvedProfile(identity=identity, profile=profile)

        return ResolvedProfile(identity=identity, profile=await self._create_and_fetch(identity))

    async def _create_and_fetch(self, identity: Identity) -> ProfileResult | None:
        """First sign-in: insert-or-no-op keyed on identity id, then re-read.

        Concurrent resolvers for the same identity race on the create; the
        loser's insert is a no-op, so at most one profile exists.
        """
        try:
            created = await self.profile_repo.create_if_absent(
                identity.id, identity.fallback_display_name()
            )
            if created:
                logger.info("Created profile for identity %s", identity.id)
            return await self.profile_repo.get_by_id(identity.id)
        except AuthorizationDeniedException:
            logger.debug("Profile create/read denied for %s", identity.id)
            return None
