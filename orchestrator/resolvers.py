"""
Tool parameter resolvers.

Resolvers turn human-readable parameters (station names, place names) into the
canonical identifiers a tool expects, using other tools as lookups. They are
kept in an ordered list and the first resolver that accepts a call is the only
one applied.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

ToolParams = Dict[str, Any]
# (tool_name, params) -> ToolExecutionResult
ExecuteTool = Callable[[str, ToolParams], Awaitable[Any]]

_UIC_CODE = re.compile(r"^\d{7,8}$")


class ToolResolver(ABC):
    @abstractmethod
    def can_resolve(self, tool_name: str, params: ToolParams) -> bool:
        ...

    @abstractmethod
    async def resolve(self, params: ToolParams, execute_tool: ExecuteTool) -> ToolParams:
        ...

    @staticmethod
    def is_uic_code(value: Any) -> bool:
        return isinstance(value, (str, int)) and bool(_UIC_CODE.match(str(value)))

    @staticmethod
    def has_coordinates(params: ToolParams) -> bool:
        return "latitude" in params and "longitude" in params


class StationResolver(ToolResolver):
    """getPlaceEvents: station name -> UIC code via findStopPlacesByName."""

    def can_resolve(self, tool_name: str, params: ToolParams) -> bool:
        if tool_name != "getPlaceEvents" or "placeId" not in params:
            return False
        return not self.is_uic_code(params["placeId"])

    async def resolve(self, params: ToolParams, execute_tool: ExecuteTool) -> ToolParams:
        place_id = params["placeId"]
        try:
            lookup = await execute_tool("findStopPlacesByName", {"query": place_id, "limit": 1})
        except Exception as e:
            logging.warning("Station lookup for %r raised: %s", place_id, e)
            return params

        data = lookup.data if lookup.success else None
        if isinstance(data, list) and data and isinstance(data[0], dict):
            station = data[0]
            uic_code = station.get("id") or station.get("uicCode")
            if uic_code:
                logging.info("Resolved station %r to %s", place_id, uic_code)
                return {**params, "placeId": uic_code}
        logging.warning("Could not resolve station %r, passing it through", place_id)
        return params


def _coordinates(place: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    centroid = place.get("centroid") or {}
    coords = centroid.get("coordinates") if isinstance(centroid, dict) else None
    if isinstance(coords, list) and len(coords) >= 2:
        # GeoJSON order is [lon, lat]
        return coords[1], coords[0]
    location = place.get("location")
    if isinstance(location, dict):
        return location.get("latitude"), location.get("longitude")
    return None, None


class LocationResolver(ToolResolver):
    """getWeather / getSnowConditions: place name -> latitude/longitude via findPlaces."""

    weather_tools = ("getWeather", "getSnowConditions")

    def can_resolve(self, tool_name: str, params: ToolParams) -> bool:
        if tool_name not in self.weather_tools:
            return False
        has_name = "locationName" in params or "location" in params
        return not self.has_coordinates(params) and has_name

    async def resolve(self, params: ToolParams, execute_tool: ExecuteTool) -> ToolParams:
        location_name = params.get("locationName") or params.get("location")
        try:
            lookup = await execute_tool("findPlaces", {"nameMatch": location_name, "limit": 1})
        except Exception as e:
            logging.warning("Location lookup for %r raised: %s", location_name, e)
            return params

        data = lookup.data if lookup.success else None
        if not (isinstance(data, list) and data and isinstance(data[0], dict)):
            logging.warning("Failed to resolve location %r: %s", location_name, getattr(lookup, "error", None))
            return params

        lat, lon = _coordinates(data[0])
        if lat is None or lon is None:
            logging.warning("No coordinates found for %r", location_name)
            return params

        rest = {k: v for k, v in params.items() if k != "location"}
        return {**rest, "latitude": lat, "longitude": lon, "locationName": location_name}


class ToolResolverRegistry:
    def __init__(self, resolvers: Optional[List[ToolResolver]] = None) -> None:
        self.resolvers: List[ToolResolver] = []
        for resolver in resolvers if resolvers is not None else [StationResolver(), LocationResolver()]:
            self.register_resolver(resolver)

    def register_resolver(self, resolver: ToolResolver) -> None:
        self.resolvers.append(resolver)

    async def resolve(self, tool_name: str, params: ToolParams, execute_tool: ExecuteTool) -> ToolParams:
        for resolver in self.resolvers:
            if resolver.can_resolve(tool_name, params):
                logging.info("Applying %s to %s", type(resolver).__name__, tool_name)
                return await resolver.resolve(params, execute_tool)
        return params
