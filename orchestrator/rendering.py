"""Plain-text renderers for tool results, keyed by tool name."""
import json
from typing import Any, Callable, Dict, Optional

from .tool_executor import ToolExecutionResult

Renderer = Callable[[Any], Optional[str]]

_RENDERERS: Dict[str, Renderer] = {}


def register_renderer(*tool_names: str) -> Callable[[Renderer], Renderer]:
    def decorator(fn: Renderer) -> Renderer:
        for name in tool_names:
            _RENDERERS[name] = fn
        return fn
    return decorator


@register_renderer("findStopPlacesByName", "findPlaces")
def _render_places(data: Any) -> Optional[str]:
    if not isinstance(data, list):
        return None
    return "\n".join(
        f"{i + 1}. {place.get('name') or place.get('text')}"
        for i, place in enumerate(data[:5])
        if isinstance(place, dict)
    )


@register_renderer("findTrips")
def _render_trips(data: Any) -> Optional[str]:
    if not isinstance(data, list):
        return None
    lines = []
    for i, trip in enumerate(data[:3]):
        if not isinstance(trip, dict):
            continue
        lines.append(
            f"{i + 1}. {trip.get('duration') or 'N/A'} | {trip.get('transfers') or 0} transfers"
            f" | CHF {trip.get('price') or 'N/A'}"
        )
    return "\n".join(lines)


@register_renderer("getWeather")
def _render_weather(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    return f"{data.get('temperature', 'N/A')}°C | {data.get('condition', 'N/A')}"


@register_renderer("getSnowConditions")
def _render_snow(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    depth = data.get("snowDepth", data.get("snow_depth", "N/A"))
    return f"{data.get('locationName') or data.get('name') or 'Resort'}: {depth} cm snow"


@register_renderer("getTrainFormation")
def _render_formation(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    coaches = data.get("formationShortString") or data.get("formation")
    if isinstance(coaches, str):
        return coaches
    return None


def format_tool_result(result: ToolExecutionResult) -> str:
    if not result.success:
        return f"Error executing {result.tool_name}: {result.error}"
    renderer = _RENDERERS.get(result.tool_name)
    rendered = renderer(result.data) if renderer else None
    if rendered is not None:
        return rendered
    return json.dumps(result.data, indent=2, ensure_ascii=False)
