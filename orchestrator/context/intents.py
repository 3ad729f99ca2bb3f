"""
Rule-based intent extraction.

Every intent type is scored from keyword matches in the languages detected
for the message, then refined by the entities found. The highest scoring
intent comes first.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from .entities import (
    build_entity_regex,
    build_simple_to_pattern,
    clean_location,
    extract_date,
    extract_preferences,
    extract_time,
    is_location_keyword,
    USER_LOCATION,
)
from .keywords import SCORED_INTENTS, get_all_keywords
from .languages import detect_message_language, matched_keywords
from .types import Intent

_IMPLICIT_TRIP = re.compile(r"\b\w+\s+(?:to|nach|bis|à|pour|vers|a|per)\s+\w+", re.IGNORECASE)
_ARRIVAL_WORDS = ("arrival", "arriving", "ankunft", "arrivée", "arrivo")
_DEPARTURE_WORDS = ("departure", "departing", "abfahrt", "départ", "partenza")

MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95


def base_confidence(match_count: int) -> float:
    if match_count >= 3:
        return 0.9
    if match_count == 2:
        return 0.8
    if match_count == 1:
        return 0.7
    return 0.5


def refine_confidence(intent_type: str, confidence: float, entities: Dict[str, Any], matched: List[str]) -> float:
    if intent_type == "trip_planning":
        if entities.get("origin") and entities.get("destination"):
            confidence += 0.1
        elif entities.get("origin") or entities.get("destination"):
            confidence += 0.05
    if intent_type in ("weather_check", "station_search") and entities.get("origin"):
        confidence += 0.1
    if entities.get("date") or entities.get("time"):
        confidence += 0.05
    if len(matched) >= 3:
        confidence += 0.05
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, confidence))


def _place(text: str, languages: List[str]) -> str:
    if is_location_keyword(text, languages):
        return USER_LOCATION
    return clean_location(text)


def extract_entities(message: str, languages: List[str], intent_type: str) -> Dict[str, Any]:
    entities: Dict[str, Any] = {}

    from_match = build_entity_regex("origin", languages).search(message)
    to_match = build_entity_regex("destination", languages).search(message)
    in_match = build_entity_regex("location", languages).search(message)

    if intent_type in ("weather_check", "snow_conditions") and in_match:
        # FR "à" and IT "a" are both destination and location prepositions
        entities["origin"] = clean_location(in_match.group(2))
    elif intent_type == "station_search" and in_match and not from_match and not to_match:
        entities["origin"] = clean_location(in_match.group(2))
    else:
        if from_match:
            entities["origin"] = _place(from_match.group(2), languages)
        if to_match:
            entities["destination"] = _place(to_match.group(2), languages)

    if intent_type == "trip_planning" and not from_match and to_match:
        simple = build_simple_to_pattern(languages).search(message)
        if simple and len(simple.group(1)) < 30:
            entities["origin"] = _place(simple.group(1), languages)
            entities.setdefault("destination", _place(simple.group(2), languages))

    if USER_LOCATION in (entities.get("origin"), entities.get("destination")):
        entities["requiresUserLocation"] = True

    date = extract_date(message, languages)
    time = extract_time(message, languages)
    if date:
        entities["date"] = date
    if time:
        entities["time"] = time

    if intent_type == "station_search":
        if any(word in message for word in _ARRIVAL_WORDS):
            entities["eventType"] = "arrivals"
        else:
            entities["eventType"] = "departures"

    preferences = extract_preferences(message)
    if preferences:
        entities["preferences"] = preferences

    return entities


def extract_intents(message: str, user_language: Optional[str] = None, threshold: float = 0.5) -> List[Intent]:
    """All intents above the threshold, highest confidence first.

    Falls back to a single general_info intent at 0.5 when nothing scores.
    """
    lowered = message.lower()
    languages = detect_message_language(message, user_language)

    scores: List[Dict[str, Any]] = []
    for intent_type in SCORED_INTENTS:
        matched = matched_keywords(get_all_keywords(intent_type, languages), lowered)
        if matched:
            scores.append({"type": intent_type, "confidence": base_confidence(len(matched)), "matched": matched})

    if _IMPLICIT_TRIP.search(lowered):
        trip = next((s for s in scores if s["type"] == "trip_planning"), None)
        if trip is None:
            scores.append({"type": "trip_planning", "confidence": 0.7, "matched": ["implicit_trip_pattern"]})
        else:
            trip["confidence"] = min(MAX_CONFIDENCE, trip["confidence"] + 0.05)

    passing = [s for s in scores if s["confidence"] >= threshold]
    if not passing:
        logging.info("No intent above %.2f for %r, using general_info", threshold, message)
        return [
            Intent(
                type="general_info",
                confidence=0.5,
                extracted_entities=extract_entities(lowered, languages, "general_info"),
                detected_languages=languages,
            )
        ]

    intents = []
    for score in passing:
        entities = extract_entities(lowered, languages, score["type"])
        intents.append(
            Intent(
                type=score["type"],
                confidence=refine_confidence(score["type"], score["confidence"], entities, score["matched"]),
                extracted_entities=entities,
                detected_languages=languages,
                matched_keywords=score["matched"][:5],
            )
        )
    intents.sort(key=lambda i: i.confidence, reverse=True)
    return intents


def extract_intent(message: str, user_language: Optional[str] = None) -> Intent:
    return extract_intents(message, user_language, threshold=0.0)[0]
