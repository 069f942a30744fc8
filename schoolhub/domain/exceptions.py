"""Domain exceptions for schoolhub.

Defines domain-level exceptions that represent business rule violations
and the error taxonomy of the onboarding and messaging core. These
exceptions are independent of infrastructure concerns. The presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class SchoolHubException(Exception):
    """Base exception for all schoolhub application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(SchoolHubException):
    """Raised when input validation fails (e.g. blank school name or message body)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(SchoolHubException):
    """Raised when the presented credential cannot be verified (invalid or expired token)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(SchoolHubException):
    """Raised when the caller's role does not allow the operation."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional resource type (e.g. 'school').
            action: Optional action that was attempted (e.g. 'join').
            message: Human-readable message; default used when resource/action omitted.
        """
        if resource and action and message == "Permission denied":
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class AuthorizationDeniedException(SchoolHubException):
    """Raised by store adapters when a row-level policy rejects a read or write.

    Distinct from "row not found". The profile resolver and provisioning
    flow treat it as expected absence for callers that are not yet linked
    to a school.
    """

    def __init__(self, operation: str, reason: str | None = None) -> None:
        """Initialize with the rejected store operation.

        Args:
            operation: Store operation that was rejected (e.g. 'profiles.get').
            reason: Optional policy message returned by the store.
        """
        details: dict[str, Any] = {"operation": operation}
        if reason:
            details["reason"] = reason
        super().__init__(
            f"Access denied by store policy: {operation}",
            "AUTHORIZATION_DENIED",
            details,
        )


class ResourceNotFoundException(SchoolHubException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'profile', 'school').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class JoinCodeNotFoundException(SchoolHubException):
    """Raised when a join code does not resolve to exactly one school (user-correctable)."""

    def __init__(self, code: str) -> None:
        super().__init__(
            "School join code is not valid",
            "JOIN_CODE_NOT_FOUND",
            {"code": code},
        )


class JoinCodeTakenException(SchoolHubException):
    """Raised by the school repository when the join code is already reserved."""

    def __init__(self, code: str) -> None:
        super().__init__(
            f"Join code '{code}' is already in use",
            "JOIN_CODE_TAKEN",
            {"code": code},
        )


class JoinCodeExhaustedException(SchoolHubException):
    """Raised when every generated join code collided (bounded regeneration gave up)."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not allocate a unique join code after {attempts} attempts",
            "JOIN_CODE_EXHAUSTED",
            {"attempts": attempts},
        )


class PrivilegedLookupUnavailableException(SchoolHubException):
    """Raised when the privileged join-code lookup cannot be used (e.g. not provisioned)."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Privileged join code lookup is unavailable",
            "PRIVILEGED_LOOKUP_UNAVAILABLE",
            {"reason": reason},
        )


class ProfileAlreadyLinkedException(SchoolHubException):
    """Raised when onboarding would move a profile that is already linked to another school."""

    def __init__(self, profile_id: str, school_id: str) -> None:
        super().__init__(
            "Account is already linked to a school",
            "PROFILE_ALREADY_LINKED",
            {"profile_id": profile_id, "school_id": school_id},
        )


class InvalidOnboardingTransitionException(SchoolHubException):
    """Raised when an onboarding step is submitted from a state that does not allow it."""

    def __init__(self, state: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} while onboarding state is {state}",
            "INVALID_ONBOARDING_TRANSITION",
            {"state": state, "action": action},
        )


class OnboardingRequiredException(SchoolHubException):
    """Raised when a protected route is entered before onboarding reached ready."""

    def __init__(self, state: str, redirect_to: str) -> None:
        super().__init__(
            "Complete onboarding before using this feature",
            "ONBOARDING_REQUIRED",
            {"state": state, "redirect_to": redirect_to},
        )


class StoreUnavailableException(SchoolHubException):
    """Raised when the hosted store fails for any reason other than a policy rejection."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            "The data store is temporarily unavailable; retry later",
            "STORE_UNAVAILABLE",
            {"operation": operation, "reason": reason},
        )


class RealtimeUnavailableException(SchoolHubException):
    """Raised when a realtime subscription cannot be opened."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Realtime updates are unavailable",
            "REALTIME_UNAVAILABLE",
            {"reason": reason},
        )


class MessageSendException(SchoolHubException):
    """Raised when a message insert fails; surfaced per message to the sender."""

    def __init__(self, reason: str, error_code: str | None = None) -> None:
        details: dict[str, Any] = {"reason": reason}
        if error_code:
            details["cause"] = error_code
        super().__init__("Message could not be sent", "MESSAGE_SEND_FAILED", details)
