"""
Function declarations for the transport and weather tools the model may call.
Schemas are plain JSON schema; gemini_tools() converts them for the SDK.
"""
import copy
from typing import Any, Dict, List

find_stop_places_tool = {
    "name": "findStopPlacesByName",
    "description": (
        "Search for train stations and stops by name. Use it to find stations and to get the station "
        "ids that getPlaceEvents needs for live departure and arrival boards."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Station name, e.g. 'Zürich HB', 'Bern', 'Basel SBB'"},
            "limit": {"type": "number", "description": "Maximum number of results (default 10)"},
        },
        "required": ["query"],
    },
}

find_places_tool = {
    "name": "findPlaces",
    "description": "Search for places, addresses and points of interest in Switzerland.",
    "parameters": {
        "type": "object",
        "properties": {
            "nameMatch": {"type": "string", "description": "Place name, e.g. 'Jungfraujoch', 'Zürich Airport'"},
            "limit": {"type": "number", "description": "Maximum number of results (default 10)"},
        },
        "required": ["nameMatch"],
    },
}

find_trips_tool = {
    "name": "findTrips",
    "description": (
        "Find public transport connections between two places, domestic or international "
        "(e.g. Zurich to Milan). Use it for 'how do I get from X to Y' and 'trains from X to Y'."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "origin": {"type": "string", "description": "Starting station, city or address"},
            "destination": {"type": "string", "description": "Destination station, city or address"},
            "dateTime": {"type": "string", "description": "Journey time in ISO 8601. Omit for 'now'."},
            "limit": {"type": "number", "description": "Number of trip options (default 3)"},
        },
        "required": ["origin", "destination"],
    },
}

get_weather_tool = {
    "name": "getWeather",
    "description": (
        "Current weather and a 7 day forecast for any location in Europe. Give coordinates or a "
        "location name; names are resolved to coordinates automatically."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "latitude": {"type": "number", "description": "Latitude, optional with locationName"},
            "longitude": {"type": "number", "description": "Longitude, optional with locationName"},
            "locationName": {"type": "string", "description": "Place name, e.g. 'Zurich'"},
        },
    },
}

get_snow_conditions_tool = {
    "name": "getSnowConditions",
    "description": "Current snow conditions and ski resort information for a location.",
    "parameters": {
        "type": "object",
        "properties": {
            "latitude": {"type": "number", "description": "Latitude of the resort"},
            "longitude": {"type": "number", "description": "Longitude of the resort"},
            "locationName": {"type": "string", "description": "Name of the resort or mountain location"},
        },
    },
}

get_eco_comparison_tool = {
    "name": "getEcoComparison",
    "description": "Compare the CO2 impact of a trip with car and plane. Needs a tripId from findTrips.",
    "parameters": {
        "type": "object",
        "properties": {
            "tripId": {"type": "string", "description": "Trip id from a findTrips result"},
            "userLanguage": {"type": "string", "description": "de, fr, it or en"},
        },
        "required": ["tripId"],
    },
}

get_place_events_tool = {
    "name": "getPlaceEvents",
    "description": (
        "Live departure and arrival boards for a station. Call findStopPlacesByName first to get the "
        "station id, or pass the station name and it will be resolved."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "placeId": {"type": "string", "description": "Station UIC code, e.g. '8507100' for Thun"},
            "eventType": {
                "type": "string",
                "enum": ["arrivals", "departures", "both"],
                "description": "departures, arrivals or both",
            },
            "dateTime": {"type": "string", "description": "Start time in ISO 8601. Omit for 'now'."},
            "limit": {"type": "number", "description": "Number of events (default 20)"},
        },
        "required": ["placeId"],
    },
}

get_train_formation_tool = {
    "name": "getTrainFormation",
    "description": (
        "Train composition (coaches, sectors) for a journey. Needs a journeyId from findTrips or "
        "getPlaceEvents results and the UIC codes of the stops of interest."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "journeyId": {"type": "string", "description": "Journey id from earlier results"},
            "stopPlaces": {"type": "array", "items": {"type": "string"}, "description": "UIC codes of stops"},
            "userLanguage": {"type": "string", "description": "de, fr, it or en"},
        },
        "required": ["journeyId", "stopPlaces"],
    },
}

TOOLS: List[Dict[str, Any]] = [
    find_stop_places_tool,
    find_places_tool,
    find_trips_tool,
    get_weather_tool,
    get_snow_conditions_tool,
    get_eco_comparison_tool,
    get_place_events_tool,
    get_train_formation_tool,
]

TOOL_NAMES = [tool["name"] for tool in TOOLS]


def _sanitize_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Gemini wants upper-case type names and no 'default' keys."""
    schema.pop("default", None)
    if isinstance(schema.get("type"), str):
        schema["type"] = schema["type"].upper()
    for prop in schema.get("properties", {}).values():
        _sanitize_schema(prop)
    if isinstance(schema.get("items"), dict):
        _sanitize_schema(schema["items"])
    return schema


def gemini_tools() -> List[Dict[str, Any]]:
    declarations = [
        {
            "name": tool["name"],
            "description": tool["description"],
            "parameters": _sanitize_schema(copy.deepcopy(tool["parameters"])),
        }
        for tool in TOOLS
    ]
    return [{"function_declarations": declarations}]
