import asyncio
from datetime import datetime

from conftest import TOOL_DATA, TRIPS, FakeTools

from orchestrator.context.cache import cache_tool_result
from orchestrator.context.manager import create_context
from orchestrator.context.types import AccessibilityPreferences, Intent, Place, TransportPreferences
from orchestrator.planning.executor import PlanExecutor
from orchestrator.planning.factory import create_execution_plan, create_trip_plan
from orchestrator.planning.formatter import format_plan_results
from orchestrator.planning.types import ExecutionPlan, ExecutionStep, StepResult


def trip_context(**prefs):
    context = create_context("s-plan")
    context.location.origin = Place(name="Zurich")
    context.location.destination = Place(name="Bern")
    context.time.date = datetime(2024, 1, 16)
    context.time.departure_time = datetime(2024, 1, 16, 9, 0)
    for key, value in prefs.items():
        setattr(context.preferences, key, value)
    return context


def intent(kind: str, segment: str = "", **entities) -> Intent:
    return Intent(type=kind, confidence=0.9, extracted_entities=entities, segment=segment)


# --- factory ---

def test_trip_plan_params():
    plan = create_trip_plan(trip_context())
    assert [s.id for s in plan.steps] == ["find-trips", "eco-comparison"]
    assert plan.steps[0].params == {
        "origin": "Zurich",
        "destination": "Bern",
        "date": "2024-01-16",
        "time": "09:00",
        "isArrivalTime": False,
    }
    eco = plan.steps[1]
    assert eco.optional and eco.depends_on == ["find-trips"]


def test_trip_plan_without_destination_has_no_steps():
    context = create_context("s-plan")
    context.location.origin = Place(name="Zurich")
    assert create_trip_plan(context).steps == []


def test_eco_and_bike_preferences_pick_eco_plan():
    assert create_execution_plan(intent("trip_planning"), trip_context(travel_style="eco")).name == "Eco-Friendly Trip"
    bike = trip_context(transport=TransportPreferences(bike_transport=True))
    assert create_execution_plan(intent("station_search", origin="Bern"), bike).name == "Eco-Friendly Trip"


def test_station_search_wins_over_wheelchair():
    context = trip_context(accessibility=AccessibilityPreferences(wheelchair=True))
    assert create_execution_plan(intent("station_search", origin="Bern"), context).name == "Station Events"
    assert create_execution_plan(intent("trip_planning"), context).name == "Accessible Trip"


def test_plain_trip_and_general_info():
    assert create_execution_plan(intent("trip_planning"), trip_context()).name == "Trip Search"
    assert create_execution_plan(intent("general_info"), trip_context()) is None
    assert create_execution_plan(intent("snow_conditions", origin="Zermatt"), trip_context()) is None


def test_station_events_params_use_resolved_station():
    plan = create_execution_plan(intent("station_search", origin="Zurich HB", eventType="arrivals"), create_context("s"))
    find, events = plan.steps
    assert find.params == {"query": "Zurich HB", "limit": 1}

    found = {"find-station": StepResult("find-station", "findStopPlacesByName", True, data=[{"id": "8503000"}])}
    assert events.resolve_params(found) == {"placeId": "8503000", "eventType": "arrivals", "limit": 10}
    # nothing found: the station name goes through unchanged
    assert events.resolve_params({})["placeId"] == "Zurich HB"


def test_formation_plan_uses_latest_board():
    context = create_context("s-form")
    cache_tool_result(context, "getPlaceEvents", {"placeId": "8503000"}, TOOL_DATA["getPlaceEvents"])

    plan = create_execution_plan(intent("train_formation", segment="Formation of the second train"), context)
    assert len(plan.steps) == 1
    assert plan.steps[0].params == {"journeyId": "j-2", "stopPlaces": ["8503000"], "userLanguage": "en"}


def test_formation_plan_falls_back_to_trip_search():
    context = create_context("s-form")
    cache_tool_result(context, "findTrips", {}, TRIPS)
    plan = create_execution_plan(intent("train_formation", segment="what does the train look like"), context)
    assert plan.steps[0].params["journeyId"] == "trip-1"
    assert plan.steps[0].params["stopPlaces"] == ["8503000"]


def test_formation_plan_without_services_is_empty():
    assert create_execution_plan(intent("train_formation"), create_context("s")).steps == []


def test_weather_plan():
    plan = create_execution_plan(intent("weather_check", origin="St. Moritz"), create_context("s"))
    assert plan.steps[0].tool_name == "getWeather"
    assert plan.steps[0].params == {"locationName": "St. Moritz"}


# --- executor and compiler ---

def test_trip_plan_merges_eco_comparison():
    context = trip_context()
    tools = FakeTools()
    result = asyncio.run(PlanExecutor(tools).execute_plan(create_trip_plan(context), context))

    assert result.success
    assert [name for name, _ in tools.calls] == ["findTrips", "getEcoComparison"]
    assert tools.calls[1][1] == {"tripId": "trip-1"}

    first = result.summary["trips"][0]
    assert first["co2Savings"] == 17.3
    assert first["comparedTo"] == "car"
    assert result.summary["origin"] == {"name": "Zürich HB"}
    assert result.summary["destination"] == {"name": "Bern"}
    assert [c["toolName"] for c in result.tool_calls()] == ["findTrips", "getEcoComparison"]
    # the cached trip list is untouched by the merge
    assert "co2Savings" not in context.recent_tool_results["findTrips"].result[0]


def test_condition_false_skips_step():
    context = trip_context()
    tools = FakeTools(data={"findTrips": []})
    result = asyncio.run(PlanExecutor(tools).execute_plan(create_trip_plan(context), context))

    assert [name for name, _ in tools.calls] == ["findTrips"]
    eco = result.results[1]
    assert eco.skipped and eco.success
    assert result.success
    assert result.tool_calls() == []


def test_failed_required_step_fails_plan():
    context = trip_context()
    tools = FakeTools(failing=("findTrips",))
    result = asyncio.run(PlanExecutor(tools).execute_plan(create_trip_plan(context), context))

    assert not result.success
    assert result.results[0].error == "boom"
    assert result.results[1].skipped
    assert "findTrips" not in context.recent_tool_results


def test_failed_optional_step_keeps_plan_successful():
    context = trip_context()
    tools = FakeTools(failing=("getEcoComparison",))
    result = asyncio.run(PlanExecutor(tools).execute_plan(create_trip_plan(context), context))
    assert result.success
    assert result.summary["ecoComparison"] is None
    assert "co2Savings" not in result.summary["trips"][0]


def test_cached_result_short_circuits_tool_call():
    context = trip_context()
    plan = create_trip_plan(context)
    cache_tool_result(context, "findTrips", dict(plan.steps[0].params), TRIPS)

    tools = FakeTools()
    result = asyncio.run(PlanExecutor(tools).execute_plan(plan, context))
    assert [name for name, _ in tools.calls] == ["getEcoComparison"]
    assert result.results[0].data == TRIPS


def test_params_error_becomes_failed_step():
    def broken(_results):
        raise KeyError("id")

    plan = ExecutionPlan(id="p", name="Broken", description="", steps=[ExecutionStep(id="a", tool_name="findTrips", params=broken)])
    result = asyncio.run(PlanExecutor(FakeTools()).execute_plan(plan, create_context("s")))
    assert not result.success
    assert result.results[0].error == "'id'"


def test_unsatisfiable_dependency_stops_plan():
    plan = ExecutionPlan(
        id="p",
        name="Stalled",
        description="",
        steps=[
            ExecutionStep(id="a", tool_name="getWeather", params={"locationName": "Bern"}),
            ExecutionStep(id="b", tool_name="getWeather", depends_on=["missing"]),
        ],
    )
    tools = FakeTools()
    result = asyncio.run(PlanExecutor(tools).execute_plan(plan, create_context("s")))
    assert [r.step_id for r in result.results] == ["a"]
    assert len(tools.calls) == 1


def test_step_hooks_fire():
    started, finished = [], []
    context = trip_context()
    executor = PlanExecutor(
        FakeTools(),
        on_step_start=lambda step, params: started.append(step.id),
        on_step_end=lambda r: finished.append(r.step_id),
    )
    asyncio.run(executor.execute_plan(create_trip_plan(context), context))
    assert started == ["find-trips", "eco-comparison"]
    assert finished == ["find-trips", "eco-comparison"]


def test_station_summary_names_the_board():
    context = create_context("s")
    plan = create_execution_plan(intent("station_search", origin="Zurich HB"), context)
    result = asyncio.run(PlanExecutor(FakeTools()).execute_plan(plan, context))
    assert result.summary["events"]["stationName"] == "Zürich HB"
    assert result.summary["events"]["stationId"] == "8503000"


# --- formatter ---

def test_format_trip_results():
    context = trip_context()
    result = asyncio.run(PlanExecutor(FakeTools()).execute_plan(create_trip_plan(context), context))
    text = format_plan_results(result)
    assert "## Connections from Zürich HB to Bern" in text
    assert "**Option 1:** 2024-01-16T09:02:00+01:00 → 2024-01-16T09:58:00+01:00 (PT56M, 0 transfers)" in text
    assert "**Option 2:**" in text
    assert "**Eco Impact:**" in text


def test_format_station_board():
    context = create_context("s")
    plan = create_execution_plan(intent("station_search", origin="Zurich HB"), context)
    result = asyncio.run(PlanExecutor(FakeTools()).execute_plan(plan, context))
    text = format_plan_results(result)
    assert "## Zürich HB - Live Departures" in text
    assert "Showing next 2 services:" in text
    assert "- **Service 1:** 09:02 IC 1 to Bern (ID: j-1)" in text


def test_format_empty_board_and_weather():
    context = create_context("s")
    tools = FakeTools(data={**TOOL_DATA, "getPlaceEvents": {"arrivals": []}})
    plan = create_execution_plan(intent("station_search", origin="Bern"), context)
    text = format_plan_results(asyncio.run(PlanExecutor(tools).execute_plan(plan, context)))
    assert "No upcoming departures found." in text

    plan = create_execution_plan(intent("weather_check", origin="St. Moritz"), context)
    text = format_plan_results(asyncio.run(PlanExecutor(FakeTools()).execute_plan(plan, context)))
    assert "## Weather\n-3°C | Snow" in text
