from typing import Dict, Optional

from .manager import create_context
from .serialization import deserialize_context, serialize_context
from .types import ConversationContext


class SessionStore:
    """In-memory map of session id to conversation context."""

    def __init__(self) -> None:
        self._contexts: Dict[str, ConversationContext] = {}

    def get(self, session_id: str, language: str = "en") -> ConversationContext:
        context = self._contexts.get(session_id)
        if context is None:
            context = create_context(session_id, language)
            self._contexts[session_id] = context
        context.language = language
        return context

    def set(self, session_id: str, context: ConversationContext) -> None:
        self._contexts[session_id] = context

    def snapshot(self, session_id: str) -> Optional[str]:
        """JSON form of a session's context, or None for an unknown session."""
        context = self._contexts.get(session_id)
        return serialize_context(context) if context is not None else None

    def restore(self, raw: str) -> ConversationContext:
        context = deserialize_context(raw)
        self._contexts[context.session_id] = context
        return context

    def clear(self, session_id: str) -> None:
        self._contexts.pop(session_id, None)

    def clear_all(self) -> None:
        self._contexts.clear()

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._contexts
