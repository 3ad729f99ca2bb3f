"""Per-session tool result cache with TTL buckets, plus entity tracking."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .types import ConversationContext, MentionedEntity, ToolResultCache, utcnow

CACHE_TTL: Dict[str, timedelta] = {
    "trips": timedelta(minutes=5),
    "weather": timedelta(minutes=30),
    "stations": timedelta(minutes=60),
}

_TTL_BUCKET = {
    "findTrips": "trips",
    "getWeather": "weather",
    "getSnowConditions": "weather",
    "findStopPlacesByName": "stations",
    "findPlaces": "stations",
}

MAX_MENTIONED = 5


def ttl_for(tool_name: str) -> timedelta:
    return CACHE_TTL[_TTL_BUCKET.get(tool_name, "trips")]


def cache_tool_result(
    context: ConversationContext,
    tool_name: str,
    params: Dict[str, Any],
    result: Any,
    now: Optional[datetime] = None,
) -> None:
    now = now or utcnow()
    context.recent_tool_results[tool_name] = ToolResultCache(
        tool_name=tool_name,
        params=params,
        result=result,
        timestamp=now,
        expires_at=now + ttl_for(tool_name),
    )
    track_mentioned_entities(context, tool_name, result, now)


def get_cached_result(
    context: ConversationContext,
    tool_name: str,
    now: Optional[datetime] = None,
) -> Optional[ToolResultCache]:
    cached = context.recent_tool_results.get(tool_name)
    if cached is None:
        return None
    if (now or utcnow()) > cached.expires_at:
        del context.recent_tool_results[tool_name]
        return None
    return cached


def _mentions(kind: str, items: List[Dict[str, Any]], names: List[str], now: datetime) -> List[MentionedEntity]:
    return [
        MentionedEntity(type=kind, name=name, data=item, mentioned_at=now, reference_index=i + 1)
        for i, (item, name) in enumerate(zip(items, names))
    ]


def track_mentioned_entities(context: ConversationContext, tool_name: str, result: Any, now: datetime) -> None:
    if tool_name == "findTrips" and isinstance(result, list):
        trips = result[:MAX_MENTIONED]
        context.mentioned_trips = _mentions("trip", trips, [f"Trip {i + 1}" for i in range(len(trips))], now)

    if tool_name == "getPlaceEvents" and isinstance(result, dict):
        board = result.get("departures") or result.get("arrivals")
        if isinstance(board, list):
            services = [
                {**item, "id": item.get("journeyId")} if isinstance(item, dict) else item
                for item in board[:MAX_MENTIONED]
            ]
            names = [f"Service {i + 1}" for i in range(len(services))]
            context.mentioned_trips = _mentions("trip", services, names, now)

    if tool_name in ("findStopPlacesByName", "findPlaces") and isinstance(result, list):
        places = [p for p in result[:MAX_MENTIONED] if isinstance(p, dict)]
        names = [str(p.get("name") or p.get("text") or "") for p in places]
        context.mentioned_places = _mentions("place", places, names, now)
