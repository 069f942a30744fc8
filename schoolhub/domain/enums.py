"""Domain enumerations for schoolhub.

Enums represent fixed sets of domain values (roles, onboarding states).
Role branching is done with exhaustive match statements over UserRole so
adding a role forces a review of every branch.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class UserRole(_ValuesMixin, str, Enum):
    """Role of a profile inside its school (or across schools for authority admins)."""

    SCHOOL_ADMIN = "school_admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"
    AUTHORITY_ADMIN = "authority_admin"

    @classmethod
    def least_privileged(cls) -> "UserRole":
        """Role assigned when a caller joins a school without having picked one."""
        return cls.STUDENT

    def creates_school(self) -> bool:
        """Return True when onboarding for this role creates a school instead of joining one."""
        match self:
            case UserRole.SCHOOL_ADMIN:
                return True
            case (
                UserRole.TEACHER
                | UserRole.STUDENT
                | UserRole.PARENT
                | UserRole.AUTHORITY_ADMIN
            ):
                return False


class OnboardingState(_ValuesMixin, str, Enum):
    """Onboarding step, derived from the caller's identity and profile on every load."""

    UNAUTHENTICATED = "unauthenticated"
    ROLE_UNSET = "role_unset"
    CREATING_TENANT = "creating_tenant"
    JOINING_TENANT = "joining_tenant"
    READY = "ready"
