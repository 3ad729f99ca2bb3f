"""
Conversation context: preferences, planning anchors and intent history for
one chat session. Contexts are updated in place on every turn.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from ..time_parser import parse_datetime
from .types import (
    AccessibilityPreferences,
    ConversationContext,
    Intent,
    Place,
    TransportPreferences,
    UserPreferences,
    utcnow,
)

MAX_INTENT_HISTORY = 10


def create_context(session_id: str, language: str = "en") -> ConversationContext:
    return ConversationContext(session_id=session_id, language=language)


def merge_preferences(current: UserPreferences, update: Dict[str, Any]) -> UserPreferences:
    """Merge a partial preference dict into the current preferences.

    Nested accessibility and transport flags are merged key by key, so a turn
    that mentions a bike does not forget an earlier wheelchair requirement.
    """
    merged = current.model_copy(deep=True)
    if update.get("travel_style"):
        merged.travel_style = update["travel_style"]

    accessibility = update.get("accessibility")
    if accessibility:
        base = merged.accessibility.model_dump(exclude_none=True) if merged.accessibility else {}
        merged.accessibility = AccessibilityPreferences(**{**base, **_as_dict(accessibility)})

    transport = update.get("transport")
    if transport:
        base = merged.transport.model_dump(exclude_none=True) if merged.transport else {}
        merged.transport = TransportPreferences(**{**base, **_as_dict(transport)})
    return merged


def _as_dict(value: Any) -> Dict[str, Any]:
    if hasattr(value, "model_dump"):
        return value.model_dump(exclude_none=True)
    return {k: v for k, v in dict(value).items() if v is not None}


def update_context_from_message(
    context: ConversationContext,
    message: str,
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
    preferences: Optional[Dict[str, Any]] = None,
    intent: Optional[Intent] = None,
    now: Optional[datetime] = None,
) -> ConversationContext:
    context.last_updated = utcnow()

    if origin:
        context.location.origin = Place(name=origin)
    if destination:
        context.location.destination = Place(name=destination)

    if date or time:
        parsed = parse_datetime(date, time, now=now)
        context.time.date = parsed["date"]
        context.time.departure_time = parsed["departure_time"]

    if preferences:
        context.preferences = merge_preferences(context.preferences, preferences)

    if intent is not None:
        context.current_intent = intent
        context.intent_history.append(intent)
        if len(context.intent_history) > MAX_INTENT_HISTORY:
            context.intent_history = context.intent_history[-MAX_INTENT_HISTORY:]

    return context
