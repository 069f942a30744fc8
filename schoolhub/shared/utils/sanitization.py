"""Input sanitization for user-supplied display text (school names, message bodies)."""

from typing import ClassVar

import nh3


class InputSanitizer:
    """
    Strip markup from user text before it is stored.

    Text is rendered by browser clients; nothing stored by this service
    is allowed to carry HTML.
    """

    ALLOWED_TAGS: ClassVar[set[str]] = set()

    @classmethod
    def sanitize_html(cls, value: str) -> str:
        """Remove all HTML tags and sanitize with nh3 (strict by default).

        Args:
            value: Raw string that may contain HTML.

        Returns:
            Sanitized string safe for HTML display.
        """
        if not value:
            return value
        return nh3.clean(value, tags=cls.ALLOWED_TAGS, attributes={})

    @classmethod
    def clean_text(cls, value: str | None) -> str:
        """Trim and sanitize; None becomes ''."""
        if value is None:
            return ""
        return cls.sanitize_html(value.strip()).strip()


def clean_optional_text(value: str | None) -> str | None:
    """Sanitize optional text; blank becomes None."""
    cleaned = InputSanitizer.clean_text(value)
    return cleaned or None
