"""Conversation use cases: realtime sync of one open conversation."""

from schoolhub.application.use_cases.conversations.conversation_sync import (
    ConversationScope,
    MessageSynchronizer,
)

__all__ = ["ConversationScope", "MessageSynchronizer"]
