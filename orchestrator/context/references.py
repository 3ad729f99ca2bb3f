import re
from typing import List, Optional

from .types import ConversationContext, MentionedEntity

_ORDINALS = [
    (1, re.compile(r"first|1")),
    (2, re.compile(r"second|2")),
    (3, re.compile(r"third|3")),
    (4, re.compile(r"fourth|4")),
    (5, re.compile(r"fifth|5")),
]
_TRIP_WORDS = ("trip", "connection", "option")
_PLACE_WORDS = ("station", "stop", "place")


def _by_recency(context: ConversationContext) -> List[MentionedEntity]:
    mentioned = [*context.mentioned_trips, *context.mentioned_places]
    return sorted(mentioned, key=lambda e: e.mentioned_at, reverse=True)


def reference_index(reference: str) -> Optional[int]:
    lowered = reference.lower()
    for index, pattern in _ORDINALS:
        if pattern.search(lowered):
            return index
    return None


def resolve_reference(context: ConversationContext, reference: str) -> Optional[MentionedEntity]:
    """Resolve 'the first one', 'option 2', 'the last station' and similar."""
    lowered = reference.lower()
    index = reference_index(lowered)

    if index is None:
        if "last" not in lowered:
            return None
        recent = _by_recency(context)
        if not recent:
            return None
        same_kind = context.mentioned_trips if recent[0].type == "trip" else context.mentioned_places
        return same_kind[-1] if same_kind else None

    if any(word in lowered for word in _TRIP_WORDS):
        candidates = context.mentioned_trips
    elif any(word in lowered for word in _PLACE_WORDS):
        candidates = context.mentioned_places
    else:
        candidates = _by_recency(context)
    return next((e for e in candidates if e.reference_index == index), None)
