"""
Execution plans for the intents the orchestrator can answer with tools.

A plan is a small DAG of tool calls. Later steps read earlier results
through their params function and may be gated by a condition.
"""
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..context.cache import get_cached_result
from ..context.references import reference_index
from ..context.types import ConversationContext, Intent
from .types import ExecutionPlan, ExecutionStep, StepResults


def _plan_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}"


def _first_item(results: StepResults, step_id: str) -> Optional[Dict[str, Any]]:
    result = results.get(step_id)
    if result is None or not result.success or not isinstance(result.data, list) or not result.data:
        return None
    first = result.data[0]
    return first if isinstance(first, dict) else None


def _has_first_trip_id(results: StepResults) -> bool:
    first = _first_item(results, "find-trips")
    return bool(first and first.get("id"))


def create_execution_plan(intent: Intent, context: ConversationContext) -> Optional[ExecutionPlan]:
    prefs = context.preferences
    bike = bool(prefs.transport and prefs.transport.bike_transport)
    wheelchair = bool(prefs.accessibility and prefs.accessibility.wheelchair)

    if prefs.travel_style == "eco" or bike:
        return create_eco_friendly_plan(context)
    if intent.type == "station_search":
        return create_station_events_plan(intent, context)
    if wheelchair:
        return create_accessible_plan(context)

    if intent.type == "trip_planning":
        return create_trip_plan(context)
    if intent.type == "train_formation":
        return create_formation_plan(intent, context)
    if intent.type == "weather_check":
        return create_weather_plan(intent, context)
    return None


def create_trip_plan(context: ConversationContext, name: str = "Trip Search") -> ExecutionPlan:
    origin = context.location.origin.name if context.location.origin else None
    destination = context.location.destination.name if context.location.destination else None

    if not origin or not destination:
        return ExecutionPlan(id=_plan_id("trip"), name=name, description="Find public transport connections")

    now = datetime.now()
    date = (context.time.date or now).strftime("%Y-%m-%d")
    departure = (context.time.departure_time or now).strftime("%H:%M")

    return ExecutionPlan(
        id=_plan_id("trip"),
        name=name,
        description=f"Find connections from {origin} to {destination}",
        steps=[
            ExecutionStep(
                id="find-trips",
                tool_name="findTrips",
                params={
                    "origin": origin,
                    "destination": destination,
                    "date": date,
                    "time": departure,
                    "isArrivalTime": context.time.is_arrive_by,
                },
            ),
            ExecutionStep(
                id="eco-comparison",
                tool_name="getEcoComparison",
                params=lambda results: {"tripId": _first_item(results, "find-trips")["id"]},
                depends_on=["find-trips"],
                optional=True,
                condition=_has_first_trip_id,
            ),
        ],
    )


def create_eco_friendly_plan(context: ConversationContext) -> ExecutionPlan:
    return create_trip_plan(context, name="Eco-Friendly Trip")


def create_accessible_plan(context: ConversationContext) -> ExecutionPlan:
    return create_trip_plan(context, name="Accessible Trip")


def create_station_events_plan(intent: Intent, context: ConversationContext) -> ExecutionPlan:
    station_name = (
        intent.extracted_entities.get("origin")
        or (context.location.origin.name if context.location.origin else None)
        or "Switzerland"
    )
    event_type = intent.extracted_entities.get("eventType") or "departures"

    def events_params(results: StepResults) -> Dict[str, Any]:
        station = _first_item(results, "find-station") or {}
        params: Dict[str, Any] = {
            # the station resolver retries the name when the lookup came back empty
            "placeId": station.get("id") or station_name,
            "eventType": event_type,
            "limit": 10,
        }
        if context.time.departure_time:
            params["dateTime"] = context.time.departure_time.isoformat()
        return params

    return ExecutionPlan(
        id=_plan_id("events"),
        name="Station Events",
        description=f"Get {event_type} for {station_name}",
        steps=[
            ExecutionStep(
                id="find-station",
                tool_name="findStopPlacesByName",
                params={"query": station_name, "limit": 1},
            ),
            ExecutionStep(
                id="get-events",
                tool_name="getPlaceEvents",
                params=events_params,
                depends_on=["find-station"],
            ),
        ],
    )


def _latest_services(context: ConversationContext) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Services from the most recent board or trip search, with the stops to ask about."""
    board = get_cached_result(context, "getPlaceEvents")
    trips = get_cached_result(context, "findTrips")

    if board and (not trips or board.timestamp >= trips.timestamp) and isinstance(board.result, dict):
        services = board.result.get("departures") or board.result.get("arrivals") or []
        stop = board.result.get("stationId") or board.params.get("placeId")
        items = [{"id": s.get("journeyId"), **s} for s in services if isinstance(s, dict)]
        return items, [str(stop)] if stop else []

    if trips and isinstance(trips.result, list):
        items = [t for t in trips.result if isinstance(t, dict)]
        stops: List[str] = []
        if items:
            legs = items[0].get("legs") or []
            stop_id = ((legs[0].get("start") or {}).get("place") or {}).get("id") if legs else None
            if stop_id:
                stops.append(str(stop_id))
        return items, stops

    return [], []


def create_formation_plan(intent: Intent, context: ConversationContext) -> ExecutionPlan:
    services, stop_places = _latest_services(context)
    index = reference_index(intent.segment or "") or 1
    chosen = services[index - 1] if index <= len(services) else (services[0] if services else None)
    journey_id = chosen.get("id") if chosen else None

    plan = ExecutionPlan(id=_plan_id("formation"), name="Train Formation", description="Get the train composition")
    if not journey_id:
        logging.info("No journey to look up the formation for")
        return plan

    plan.description = f"Get the composition of service {index}"
    plan.steps.append(
        ExecutionStep(
            id="get-formation",
            tool_name="getTrainFormation",
            params={"journeyId": journey_id, "stopPlaces": stop_places, "userLanguage": context.language},
        )
    )
    return plan


def create_weather_plan(intent: Intent, context: ConversationContext) -> ExecutionPlan:
    location = intent.extracted_entities.get("origin") or (
        context.location.origin.name if context.location.origin else None
    )
    plan = ExecutionPlan(id=_plan_id("weather"), name="Weather", description="Get the weather forecast")
    if not location:
        return plan

    plan.description = f"Get the weather for {location}"
    plan.steps.append(ExecutionStep(id="get-weather", tool_name="getWeather", params={"locationName": location}))
    return plan
