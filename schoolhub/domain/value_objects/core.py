"""Domain value objects for schoolhub.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

import re
import secrets
import string
from dataclasses import dataclass
from typing import ClassVar

from schoolhub.core.constants import KEY_SEP

# Join codes are uppercase alphanumeric; anything else a user types (spaces,
# hyphens) is dropped during normalization.
_NOT_CODE_CHAR_RE = re.compile(r"[^A-Z0-9]")


@dataclass(frozen=True)
class JoinCode:
    """Value object for a school's human-shareable join code.

    Stored uppercase; matching is case-insensitive because user input is
    normalized with from_user_input before lookup.
    """

    value: str

    ALPHABET: ClassVar[str] = string.ascii_uppercase + string.digits
    MAX_LENGTH: ClassVar[int] = 32

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Join code must be a non-empty string")
        if len(self.value) > self.MAX_LENGTH:
            raise ValueError(f"Join code must not exceed {self.MAX_LENGTH} characters")
        if _NOT_CODE_CHAR_RE.search(self.value):
            raise ValueError("Join code must be uppercase alphanumeric")

    @classmethod
    def from_user_input(cls, raw: str) -> "JoinCode":
        """Normalize user input: trim, uppercase, drop separators.

        Raises:
            ValueError: If nothing usable remains after normalization.
        """
        normalized = _NOT_CODE_CHAR_RE.sub("", (raw or "").strip().upper())
        return cls(normalized)

    @classmethod
    def generate(cls, length: int = 6) -> "JoinCode":
        """Return a random code of the given length from the uppercase alphanumeric alphabet."""
        return cls("".join(secrets.choice(cls.ALPHABET) for _ in range(length)))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConversationKey:
    """Value object for the unordered participant pair of a direct conversation.

    The key is the same whichever participant builds it, so messages in
    both directions share one equality filter.
    """

    first: str
    second: str

    def __post_init__(self) -> None:
        if not self.first or not self.second:
            raise ValueError("Conversation participants must be non-empty")
        if self.first > self.second:
            # frozen: normalize order through object.__setattr__
            first, second = self.second, self.first
            object.__setattr__(self, "first", first)
            object.__setattr__(self, "second", second)

    @classmethod
    def between(cls, participant_a: str, participant_b: str) -> "ConversationKey":
        return cls(participant_a, participant_b)

    def includes_pair(self, sender_id: str, receiver_id: str) -> bool:
        """Return True when (sender, receiver) is this pair in either order."""
        return {sender_id, receiver_id} == {self.first, self.second}

    @property
    def value(self) -> str:
        return f"{self.first}{KEY_SEP}{self.second}"

    def __str__(self) -> str:
        return self.value
