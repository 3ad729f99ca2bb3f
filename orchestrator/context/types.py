from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


TravelStyle = Literal["fastest", "cheapest", "eco", "comfortable", "balanced"]
IntentType = Literal[
    "trip_planning",
    "weather_check",
    "snow_conditions",
    "station_search",
    "train_formation",
    "general_info",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccessibilityPreferences(BaseModel):
    wheelchair: Optional[bool] = None
    visual_assistance: Optional[bool] = None
    reduced_mobility: Optional[bool] = None


class TransportPreferences(BaseModel):
    bike_transport: Optional[bool] = None
    first_class: Optional[bool] = None
    avoid_bus: Optional[bool] = None


class UserPreferences(BaseModel):
    travel_style: TravelStyle = "balanced"
    accessibility: Optional[AccessibilityPreferences] = None
    transport: Optional[TransportPreferences] = None


class Place(BaseModel):
    name: str
    coordinates: Optional[Dict[str, float]] = None  # {"lat", "lon"}
    stop_id: Optional[str] = None


class IntermediateStop(BaseModel):
    name: str
    stop_id: Optional[str] = None
    duration: Optional[int] = None  # minutes spent there


class LocationContext(BaseModel):
    origin: Optional[Place] = None
    destination: Optional[Place] = None
    intermediate_stops: List[IntermediateStop] = Field(default_factory=list)


class TimeContext(BaseModel):
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    is_arrive_by: bool = False
    duration: Optional[float] = None  # hours
    date: Optional[datetime] = None


class Intent(BaseModel):
    type: IntentType
    confidence: float
    extracted_entities: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)
    priority: Optional[int] = None
    segment: Optional[str] = None
    detected_languages: List[str] = Field(default_factory=list)
    matched_keywords: List[str] = Field(default_factory=list)
    # structure parsed from markdown by the UI
    preferences: Optional[List[Any]] = None
    sub_queries: Optional[List[Any]] = None


class ToolResultCache(BaseModel):
    tool_name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    timestamp: datetime
    expires_at: datetime


class MentionedEntity(BaseModel):
    type: Literal["place", "trip"]
    name: str
    data: Any = None
    mentioned_at: datetime
    reference_index: int


class ConversationContext(BaseModel):
    session_id: str
    language: str = "en"
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    preferences: UserPreferences = Field(default_factory=UserPreferences)
    location: LocationContext = Field(default_factory=LocationContext)
    time: TimeContext = Field(default_factory=TimeContext)

    current_intent: Optional[Intent] = None
    intent_history: List[Intent] = Field(default_factory=list)

    recent_tool_results: Dict[str, ToolResultCache] = Field(default_factory=dict)

    mentioned_places: List[MentionedEntity] = Field(default_factory=list)
    mentioned_trips: List[MentionedEntity] = Field(default_factory=list)
