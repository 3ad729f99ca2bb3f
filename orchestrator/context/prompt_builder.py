import json
from typing import List

from .types import ConversationContext


def build_contextual_prompt(context: ConversationContext) -> str:
    """Describe what the session already knows, for the system prompt."""
    parts: List[str] = []
    location = context.location

    if location.origin or location.destination:
        parts.append("CURRENT PLANNING CONTEXT:")
        if location.origin:
            parts.append(f"- Origin: {location.origin.name}")
        if location.destination:
            parts.append(f"- Destination: {location.destination.name}")
        if context.time.departure_time:
            parts.append(f"- When: {context.time.departure_time.strftime('%Y-%m-%d %H:%M')}")

    prefs = context.preferences
    if prefs.travel_style != "balanced":
        parts.append("\nUSER PREFERENCES:")
        parts.append(f"- Travel style: {prefs.travel_style}")
        if prefs.accessibility and prefs.accessibility.wheelchair:
            parts.append("- Requires wheelchair accessibility")
        if prefs.transport and prefs.transport.bike_transport:
            parts.append("- Traveling with bicycle")
        if prefs.transport and prefs.transport.first_class:
            parts.append("- Prefers first class")

    if context.mentioned_trips:
        parts.append("\nRECENT TRIP OPTIONS (user can reference by number):")
        for i, trip in enumerate(context.mentioned_trips):
            snippet = json.dumps(trip.data, default=str, ensure_ascii=False)[:100]
            parts.append(f"{i + 1}. {trip.name}: {snippet}...")

    return "\n".join(parts)
