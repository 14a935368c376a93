from .context import (
    CONTEXT_TTL_SECONDS,
    MAX_CONTEXTS_PER_USER,
    ChatContext,
    ChatContextStore,
    chat_contexts,
)

__all__ = [
    "CONTEXT_TTL_SECONDS",
    "MAX_CONTEXTS_PER_USER",
    "ChatContext",
    "ChatContextStore",
    "chat_contexts",
]
