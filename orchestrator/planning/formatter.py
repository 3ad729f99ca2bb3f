"""Markdown digest of a plan result, handed to the model for the final answer."""
import logging
from typing import Any, Dict, List

from dateutil import parser as date_parser

from ..rendering import format_tool_result
from ..tool_executor import ToolExecutionResult
from .types import PlanExecutionResult


def _clock(raw: Any) -> str:
    if not raw:
        return "N/A"
    try:
        return date_parser.isoparse(str(raw)).strftime("%H:%M")
    except (ValueError, OverflowError):
        logging.warning("Unparseable service time %r", raw)
        return "N/A"


def _service_line(i: int, item: Dict[str, Any]) -> str:
    product = (item.get("serviceProduct") or {}).get("sbbServiceProduct") or {}
    line = product.get("name") or item.get("line") or "Train"
    raw_time = (
        item.get("departureTime")
        or item.get("arrivalTime")
        or (item.get("departure") or {}).get("timeAimed")
        or (item.get("arrival") or {}).get("timeAimed")
    )
    origin = item.get("origin")
    towards = item.get("destination") or (origin.get("name") if isinstance(origin, dict) else origin) or "Unknown"
    return f"- **Service {i + 1}:** {_clock(raw_time)} {line} to {towards} (ID: {item.get('journeyId')})"


def format_plan_results(result: PlanExecutionResult, language: str = "en") -> str:
    parts: List[str] = []
    summary = result.summary

    trips = summary.get("trips")
    if isinstance(trips, list) and trips:
        origin = (summary.get("origin") or {}).get("name") or "origin"
        destination = (summary.get("destination") or {}).get("name") or "destination"
        parts.append(f"## Connections from {origin} to {destination}")
        for i, trip in enumerate(trips[:3]):
            if not isinstance(trip, dict):
                continue
            parts.append(
                f"\n**Option {i + 1}:** {trip.get('departure')} → {trip.get('arrival')} "
                f"({trip.get('duration')}, {trip.get('transfers') or 0} transfers)"
            )

    if summary.get("ecoComparison"):
        parts.append("\n**Eco Impact:** Sustainability data included in the response.")

    events = summary.get("events")
    if events:
        event_type = "Arrivals" if events.get("arrivals") else "Departures"
        services = events.get("arrivals") or events.get("departures") or []
        station = (summary.get("station") or {}).get("name") or "Station"
        parts.append(f"\n## {station} - Live {event_type}")
        if services:
            parts.append(f"Showing next {len(services)} services:")
            parts.extend(_service_line(i, item) for i, item in enumerate(services[:3]) if isinstance(item, dict))
        else:
            parts.append(f"No upcoming {event_type.lower()} found.")

    if summary.get("weather") is not None:
        rendered = format_tool_result(ToolExecutionResult(success=True, tool_name="getWeather", data=summary["weather"]))
        parts.append(f"\n## Weather\n{rendered}")

    if summary.get("formation") is not None:
        rendered = format_tool_result(
            ToolExecutionResult(success=True, tool_name="getTrainFormation", data=summary["formation"])
        )
        parts.append(f"\n## Train Formation\n{rendered}")

    return "\n".join(parts)
