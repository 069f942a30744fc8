"""DTOs for the authenticated caller (issued by the external auth provider)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """Opaque caller reference from the auth provider. Never mutated by this service.

    id_token is the raw bearer credential; store adapters use it to run
    caller-scoped requests so row-level rules apply.
    """

    id: str
    email: str | None = None
    full_name: str | None = None
    id_token: str | None = None

    def fallback_display_name(self) -> str:
        """Best-effort display name: full-name claim, else email local part, else ''."""
        if self.full_name and self.full_name.strip():
            return self.full_name.strip()
        if self.email:
            return self.email.split("@")[0] or ""
        return ""
