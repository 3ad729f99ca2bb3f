import asyncio

from orchestrator.context.entities import USER_LOCATION, clean_location, extract_time
from orchestrator.context.intents import extract_intent, extract_intents
from orchestrator.context.languages import detect_message_language, matched_keywords, normalize_for_matching
from orchestrator.context.llm_intents import extract_intent_with_llm
from orchestrator.context.multi_intent import extract_multiple_intents, segment_query

from conftest import FakeLLM


def test_trip_with_date_and_time():
    intent = extract_intent("Find trains from Zurich to Bern tomorrow at 9am", "en")
    assert intent.type == "trip_planning"
    assert intent.confidence == 0.95
    entities = intent.extracted_entities
    assert entities["origin"] == "Zurich"
    assert entities["destination"] == "Bern"
    assert entities["date"] == "tomorrow"
    assert entities["time"] == "9am"


def test_german_trip():
    intent = extract_intent("Zug von Zürich nach Bern morgen um 8 Uhr", "de")
    assert intent.type == "trip_planning"
    assert intent.detected_languages == ["de"]
    assert intent.extracted_entities["origin"] == "Zürich"
    assert intent.extracted_entities["destination"] == "Bern"
    assert intent.extracted_entities["date"] == "morgen"
    assert intent.extracted_entities["time"] == "8"


def test_weather_location():
    intent = extract_intent("What's the weather in St. Moritz?", "en")
    assert intent.type == "weather_check"
    assert intent.extracted_entities["origin"] == "St. Moritz"
    assert intent.confidence >= 0.7


def test_snow_beats_weather():
    intent = extract_intent("Snow conditions in Zermatt", "en")
    assert intent.type == "snow_conditions"
    assert intent.extracted_entities["origin"] == "Zermatt"


def test_station_board_event_type():
    departures = extract_intent("Show departures from Zurich HB", "en")
    assert departures.type == "station_search"
    assert departures.extracted_entities["eventType"] == "departures"
    assert departures.extracted_entities["origin"] == "Zurich Hb"

    arrivals = extract_intent("Show arrivals in Bern", "en")
    assert arrivals.extracted_entities["eventType"] == "arrivals"
    assert arrivals.extracted_entities["origin"] == "Bern"


def test_here_becomes_user_location():
    intent = extract_intent("How do I get from here to Bern", "en")
    assert intent.type == "trip_planning"
    assert intent.extracted_entities["origin"] == USER_LOCATION
    assert intent.extracted_entities["requiresUserLocation"] is True


def test_preferences_are_entities():
    intent = extract_intent("eco-friendly train with my bike from Basel to Chur", "en")
    prefs = intent.extracted_entities["preferences"]
    assert prefs["travel_style"] == "eco"
    assert prefs["transport"] == {"bike_transport": True}


def test_general_info_fallback():
    intents = extract_intents("hello there", "en")
    assert [i.type for i in intents] == ["general_info"]
    assert intents[0].confidence == 0.5


def test_language_detection_orders_user_language_first():
    assert detect_message_language("train from Genève demain", "fr")[0] == "fr"
    assert detect_message_language("xyz", "it") == ["it"]
    assert detect_message_language("xyz") == ["en"]
    assert normalize_for_matching("Zürich Straße") == "zurich strasse"


def test_keyword_matching_boundaries():
    assert matched_keywords(["rain", "train"], "Two trains to Bern") == ["train"]
    assert matched_keywords(["how do i get"], "So how do I get there?") == ["how do i get"]
    assert matched_keywords(["zurich", "bahnhof"], "Zürich Bahnhof") == ["bahnhof"]
    assert matched_keywords(["zurich", "bahnhof"], "Zürich Bahnhof", use_normalization=True) == ["zurich", "bahnhof"]


def test_clean_location():
    assert clean_location("**st. gallen**") == "St. Gallen"
    assert clean_location("baden-baden") == "Baden-Baden"


def test_segments_split_on_conjunctions_and_sentences():
    segments = segment_query("Weather in St. Moritz. Trains from Bern to Thun")
    assert [s.text for s in segments] == ["Weather in St. Moritz.", "Trains from Bern to Thun"]


def test_multiple_intents_in_priority_order():
    intents = extract_multiple_intents("Show trains from Zurich to Bern and the weather in Bern", "en")
    assert [i.type for i in intents] == ["trip_planning", "weather_check"]
    assert [i.priority for i in intents] == [1, 2]
    assert intents[1].extracted_entities["origin"] == "Bern"


def test_duplicate_intents_collapse():
    intents = extract_multiple_intents("trains from Zurich to Bern and trains from Basel to Bern", "en")
    assert [i.type for i in intents] == ["trip_planning"]


def test_single_segment_keeps_message():
    intents = extract_multiple_intents("Weather in Bern", "en")
    assert len(intents) == 1
    assert intents[0].segment == "Weather in Bern"
    assert intents[0].priority == 1


def test_llm_intent_is_clamped():
    llm = FakeLLM(json_reply='{"intent": "weather_check", "confidence": 0.99, "entities": {"origin": "Bern"}}')
    intent = asyncio.run(extract_intent_with_llm("weather in bern", llm, "en"))
    assert intent.type == "weather_check"
    assert intent.confidence == 0.95
    assert intent.matched_keywords == ["llm_extraction"]
    assert "weather in bern" in llm.prompts[0]


def test_llm_intent_falls_back_to_rules():
    for reply in ("not json at all", '{"intent": "teleport", "confidence": 0.8}', '{"intent": "trip_planning"}'):
        llm = FakeLLM(json_reply=reply)
        intent = asyncio.run(extract_intent_with_llm("trains from Zurich to Bern", llm, "en"))
        assert intent.type == "trip_planning"
        assert intent.matched_keywords != ["llm_extraction"]


def test_llm_intent_without_key_uses_rules():
    llm = FakeLLM(configured=False)
    intent = asyncio.run(extract_intent_with_llm("weather in Bern", llm, "en"))
    assert intent.type == "weather_check"
    assert llm.prompts == []


def test_french_times_keep_minutes():
    assert extract_time("Train pour Lausanne à 14h30", ["fr"]) == "14h30"
    assert extract_time("Départ 8h demain", ["fr"]) == "8h"
    assert extract_time("Départ vers 9:15", ["fr"]) == "9:15"
