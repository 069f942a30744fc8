"""Shared utilities: datetime, generators, sanitization."""

from schoolhub.shared.utils.datetime import ensure_utc, parse_utc, to_rfc3339, utc_now
from schoolhub.shared.utils.generators import generate_cuid
from schoolhub.shared.utils.sanitization import InputSanitizer, clean_optional_text

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "parse_utc",
    "to_rfc3339",
    "InputSanitizer",
    "clean_optional_text",
]
