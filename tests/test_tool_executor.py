import asyncio

import pytest

from orchestrator.resolvers import LocationResolver, StationResolver, ToolResolver, ToolResolverRegistry
from orchestrator.rendering import format_tool_result
from orchestrator.tool_executor import ToolExecutionResult, ToolExecutor, unwrap_envelope
from orchestrator.tool_schemas import TOOL_NAMES, gemini_tools

from conftest import ToolProxy, fast_retry


def _executor(proxy: ToolProxy, **kwargs) -> ToolExecutor:
    return ToolExecutor(proxy.client(), fast_retry(), base_url="http://proxy.test", **kwargs)


def test_find_trips_defaults():
    proxy = ToolProxy()
    result = asyncio.run(_executor(proxy).execute_tool("findTrips", {"origin": "Zurich", "destination": "Bern"}))
    assert result.success
    assert result.data[0]["id"] == "trip-1"
    sent = proxy.calls[0]["params"]
    assert sent["limit"] == 3
    assert sent["responseMode"] == "detailed"


def test_find_trips_comparison_mode():
    proxy = ToolProxy()
    asyncio.run(_executor(proxy).execute_tool("findTrips", {"origin": "A", "destination": "B", "limit": 6}))
    assert proxy.calls[0]["params"]["responseMode"] == "standard"
    assert proxy.calls[0]["params"]["limit"] == 6


def test_station_name_is_resolved_first():
    proxy = ToolProxy()
    result = asyncio.run(_executor(proxy).execute_tool("getPlaceEvents", {"placeId": "Zurich HB", "eventType": "departures"}))
    assert proxy.names() == ["findStopPlacesByName", "getPlaceEvents"]
    assert proxy.calls[1]["params"]["placeId"] == "8503000"
    assert result.params["placeId"] == "8503000"


def test_uic_code_skips_resolution():
    proxy = ToolProxy()
    asyncio.run(_executor(proxy).execute_tool("getPlaceEvents", {"placeId": "8507000"}))
    assert proxy.names() == ["getPlaceEvents"]


def test_weather_location_resolved_to_coordinates():
    proxy = ToolProxy()
    asyncio.run(_executor(proxy).execute_tool("getWeather", {"location": "St. Moritz"}))
    assert proxy.names() == ["findPlaces", "getWeather"]
    sent = proxy.calls[1]["params"]
    assert sent == {"latitude": 46.49, "longitude": 9.84, "locationName": "St. Moritz"}


def test_failed_lookup_passes_params_through():
    proxy = ToolProxy(failures={"findPlaces": 400})
    asyncio.run(_executor(proxy).execute_tool("getSnowConditions", {"locationName": "Nowhere"}))
    assert proxy.calls[-1] == {"name": "getSnowConditions", "params": {"locationName": "Nowhere"}}


def test_http_error_becomes_failed_result():
    proxy = ToolProxy(failures={"getWeather": 500})
    result = asyncio.run(_executor(proxy).execute_tool("getWeather", {"latitude": 1, "longitude": 2}))
    assert not result.success
    assert result.error == "getWeather failed"
    assert proxy.names() == ["getWeather"] * 3


def test_envelope_is_unwrapped():
    proxy = ToolProxy(data={"getWeather": {"content": [{"type": "text", "text": '{"temperature": 4}'}]}})
    result = asyncio.run(_executor(proxy).execute_tool("getWeather", {"latitude": 1, "longitude": 2}))
    assert result.data == {"temperature": 4}
    assert unwrap_envelope({"content": [{"text": "plain words"}]}) == {"text": "plain words"}
    assert unwrap_envelope([1, 2]) == [1, 2]


def test_execute_tools_keeps_order():
    proxy = ToolProxy()
    results = asyncio.run(
        _executor(proxy).execute_tools([("getWeather", {"latitude": 1, "longitude": 2}), ("unknownTool", {})])
    )
    assert [r.tool_name for r in results] == ["getWeather", "unknownTool"]
    assert [r.success for r in results] == [True, False]


def test_first_matching_resolver_wins():
    applied = []

    class Greedy(ToolResolver):
        def can_resolve(self, tool_name, params):
            return True

        async def resolve(self, params, execute_tool):
            applied.append("greedy")
            return {**params, "greedy": True}

    registry = ToolResolverRegistry([Greedy(), StationResolver(), LocationResolver()])

    async def never_called(name, params):
        raise AssertionError(name)

    resolved = asyncio.run(registry.resolve("getPlaceEvents", {"placeId": "Bern"}, never_called))
    assert resolved == {"placeId": "Bern", "greedy": True}
    assert applied == ["greedy"]


def test_resolver_must_implement_both_methods():
    class HalfDone(ToolResolver):
        def can_resolve(self, tool_name, params):
            return True

    with pytest.raises(TypeError):
        HalfDone()

    registry = ToolResolverRegistry([])
    registry.register_resolver(StationResolver())
    assert [type(r).__name__ for r in registry.resolvers] == ["StationResolver"]


def test_renderers():
    weather = ToolExecutionResult(success=True, tool_name="getWeather", data={"temperature": 5, "condition": "Fog"})
    assert format_tool_result(weather) == "5°C | Fog"
    places = ToolExecutionResult(success=True, tool_name="findPlaces", data=[{"name": "Bern"}, {"text": "Thun"}])
    assert format_tool_result(places) == "1. Bern\n2. Thun"
    failed = ToolExecutionResult(success=False, tool_name="findTrips", error="boom")
    assert format_tool_result(failed) == "Error executing findTrips: boom"
    other = ToolExecutionResult(success=True, tool_name="getEcoComparison", data={"savings": 3})
    assert '"savings": 3' in format_tool_result(other)


def test_gemini_declarations():
    declarations = gemini_tools()[0]["function_declarations"]
    assert [d["name"] for d in declarations] == TOOL_NAMES
    trips = next(d for d in declarations if d["name"] == "findTrips")
    assert trips["parameters"]["type"] == "OBJECT"
    properties = trips["parameters"]["properties"]
    assert all("default" not in prop for prop in properties.values())
    assert properties["origin"]["type"] == "STRING"
