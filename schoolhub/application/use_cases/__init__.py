"""Application use cases: one entry point per workflow."""

from schoolhub.application.use_cases.conversations import (
    ConversationScope,
    MessageSynchronizer,
)

__all__ = ["ConversationScope", "MessageSynchronizer"]
