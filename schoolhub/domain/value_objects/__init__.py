"""Domain value objects (immutable, self-validating)."""

from schoolhub.domain.value_objects.core import ConversationKey, JoinCode

__all__ = ["ConversationKey", "JoinCode"]
