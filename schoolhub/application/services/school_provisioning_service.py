"""School provisioning: role selection, school creation and joining by code."""

from __future__ import annotations

from collections.abc import Callable

from schoolhub.application.dtos.profile import ProfileContext, ProfileResult
from schoolhub.application.dtos.school import ProvisioningResult
from schoolhub.application.interfaces.repositories import (
    IProfileRepository,
    ISchoolCodeLookup,
    ISchoolRepository,
)
from schoolhub.core.constants import ROUTE_DASHBOARD
from schoolhub.domain.enums import UserRole
from schoolhub.domain.exceptions import (
    AuthorizationDeniedException,
    AuthorizationException,
    JoinCodeExhaustedException,
    JoinCodeNotFoundException,
    JoinCodeTakenException,
    PrivilegedLookupUnavailableException,
    ProfileAlreadyLinkedException,
    ValidationException,
)
from schoolhub.domain.value_objects import JoinCode
from schoolhub.shared.telemetry.logging import get_logger
from schoolhub.shared.utils.generators import generate_cuid
from schoolhub.shared.utils.sanitization import InputSanitizer, clean_optional_text

logger = get_logger(__name__)


class SchoolProvisioningService:
    """Links a profile to a school, either by creating one (school admin) or joining by code.

    There is no multi-row transaction in the store; create_school is a
    saga: a failure linking the profile deletes the school it just created.
    """

    def __init__(
        self,
        profile_repo: IProfileRepository,
        school_repo: ISchoolRepository,
        code_lookup: ISchoolCodeLookup | None = None,
        join_code_length: int = 6,
        max_code_attempts: int = 5,
        code_generator: Callable[[int], JoinCode] = JoinCode.generate,
        id_generator: Callable[[], str] = generate_cuid,
    ) -> None:
        self.profile_repo = profile_repo
        self.school_repo = school_repo
        self.code_lookup = code_lookup
        self.join_code_length = join_code_length
        self.max_code_attempts = max_code_attempts
        self.code_generator = code_generator
        self.id_generator = id_generator

    async def select_role(self, context: ProfileContext, role: UserRole) -> ProfileResult:
        """Persist the chosen role immediately (conflict-safe upsert keyed on the identity)."""
        if context.school_id is not None:
            raise ProfileAlreadyLinkedException(context.id, context.school_id)
        return await self.profile_repo.set_role(context.id, role, context.full_name)

    async def create_school(
        self,
        context: ProfileContext,
        name: str,
        region: str,
        address: str | None = None,
    ) -> ProvisioningResult:
        """Create a school with a unique join code and link the caller as its admin.

        A caller who is already the linked admin of a school gets that
        school back (retry after a lost response).

        Raises:
            ValidationException: name or region blank.
            ProfileAlreadyLinkedException: caller is linked to a school with another role.
            JoinCodeExhaustedException: every generated code collided.
        """
        clean_name = InputSanitizer.clean_text(name)
        clean_region = InputSanitizer.clean_text(region)
        if not clean_name:
            raise ValidationException("School name is required", field="name")
        if not clean_region:
            raise ValidationException("Region is required", field="region")

        if context.school_id is not None:
            if context.role is UserRole.SCHOOL_ADMIN:
                existing = await self.school_repo.get_by_id(context.school_id)
                logger.info(
                    "Profile %s already administers school %s", context.id, context.school_id
                )
                return ProvisioningResult(
                    school_id=context.school_id,
                    role=UserRole.SCHOOL_ADMIN,
                    redirect_to=ROUTE_DASHBOARD,
                    join_code=existing.join_code if existing else None,
                )
            raise ProfileAlreadyLinkedException(context.id, context.school_id)

        await self.profile_repo.set_role(context.id, UserRole.SCHOOL_ADMIN, context.full_name)

        school_id = self.id_generator()
        school = None
        for attempt in range(1, self.max_code_attempts + 1):
            code = self.code_generator(self.join_code_length)
            try:
                school = await self.school_repo.create_school(
                    school_id=school_id,
                    name=clean_name,
                    region=clean_region,
                    join_code=code.value,
                    address=clean_optional_text(address),
                )
                break
            except JoinCodeTakenException:
                logger.info(
                    "Join code collision on attempt %d/%d for school %s",
                    attempt,
                    self.max_code_attempts,
                    school_id,
                )
        if school is None:
            raise JoinCodeExhaustedException(self.max_code_attempts)

        try:
            await self.profile_repo.link_school(
                context.id, school.id, UserRole.SCHOOL_ADMIN, context.full_name
            )
        except Exception:
            await self._compensate_school(school.id, school.join_code)
            raise

        logger.info("School %s created by %s", school.id, context.id)
        return ProvisioningResult(
            school_id=school.id,
            role=UserRole.SCHOOL_ADMIN,
            redirect_to=ROUTE_DASHBOARD,
            join_code=school.join_code,
        )

    async def join_school(self, context: ProfileContext, code: str) -> ProvisioningResult:
        """Link the caller to the school owning code (case/separator-insensitive, exact match).

        Keeps the previously chosen role, defaulting to the least-privileged
        one. Repeating the call with the same code is a no-op.

        Raises:
            ValidationException: code empty after normalization.
            JoinCodeNotFoundException: code does not resolve to exactly one school.
            AuthorizationException: caller chose the school admin role.
            ProfileAlreadyLinkedException: caller is linked to a different school.
        """
        try:
            join_code = JoinCode.from_user_input(code)
        except ValueError as e:
            raise ValidationException(str(e), field="join_code") from e

        school_id = await self._resolve_code(join_code)

        role = context.role or UserRole.least_privileged()
        if role.creates_school():
            raise AuthorizationException(
                resource="school",
                action="join",
                message="School admins create a school instead of joining one",
            )
        if context.school_id is not None and context.school_id != school_id:
            raise ProfileAlreadyLinkedException(context.id, context.school_id)

        await self.profile_repo.link_school(context.id, school_id, role, context.full_name)
        logger.info("Profile %s joined school %s as %s", context.id, school_id, role.value)
        return ProvisioningResult(
            school_id=school_id,
            role=role,
            redirect_to=ROUTE_DASHBOARD,
            join_code=join_code.value,
        )

    async def _resolve_code(self, join_code: JoinCode) -> str:
        """Privileged lookup first; caller-scoped exact-match query when it is unavailable."""
        if self.code_lookup is not None:
            try:
                school_id = await self.code_lookup.find_school_id_by_code(join_code.value)
            except PrivilegedLookupUnavailableException as e:
                logger.warning("Privileged join code lookup unavailable: %s", e.details)
            else:
                if school_id is None:
                    raise JoinCodeNotFoundException(join_code.value)
                return school_id

        try:
            matches = await self.school_repo.find_ids_by_code(join_code.value)
        except AuthorizationDeniedException:
            # Rows hidden by policy are indistinguishable from no rows.
            matches = []
        if len(matches) != 1:
            raise JoinCodeNotFoundException(join_code.value)
        return matches[0]

    async def _compensate_school(self, school_id: str, join_code: str) -> None:
        try:
            await self.school_repo.delete_school(school_id, join_code)
            logger.warning("Rolled back school %s after profile link failed", school_id)
        except Exception:
            logger.exception("Compensating delete failed for school %s", school_id)
