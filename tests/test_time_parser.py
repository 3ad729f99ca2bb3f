from datetime import datetime, timezone

from orchestrator.time_parser import normalize_time, parse_date, parse_datetime


NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)  # a Monday


def test_tomorrow_afternoon():
    parsed = parse_datetime("tomorrow", "2:30pm", now=NOW)
    assert parsed["date"].date().isoformat() == "2024-01-16"
    assert parsed["departure_time"].hour == 14
    assert parsed["departure_time"].minute == 30


def test_defaults_to_now_and_nine():
    parsed = parse_datetime(now=NOW)
    assert parsed["date"].date() == NOW.date()
    assert (parsed["departure_time"].hour, parsed["departure_time"].minute) == (9, 0)


def test_impossible_hour_falls_back_to_now():
    parsed = parse_datetime("today", "25", now=NOW)
    assert parsed["date"] == NOW
    assert parsed["departure_time"] == NOW


def test_normalize_time_forms():
    assert normalize_time("9:30am") == "09:30"
    assert normalize_time("14:45") == "14:45"
    assert normalize_time("9am") == "09:00"
    assert normalize_time("12am") == "00:00"
    assert normalize_time("12:15 pm") == "12:15"
    assert normalize_time("7") == "07:00"
    assert normalize_time("7:05") == "07:05"
    assert normalize_time("14:45:10") == "14:45"
    assert normalize_time("whenever") == "09:00"


def test_relative_words_in_four_languages():
    assert parse_date("morgen", NOW).day == 16
    assert parse_date("demain", NOW).day == 16
    assert parse_date("domani", NOW).day == 16
    assert parse_date("gestern", NOW).day == 14
    assert parse_date("oggi", NOW) == NOW


def test_weekend_is_next_saturday():
    assert parse_date("this weekend", NOW).date().isoformat() == "2024-01-20"
    saturday = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)
    assert parse_date("wochenende", saturday).date().isoformat() == "2024-01-27"
    sunday = datetime(2024, 1, 21, 12, 0, tzinfo=timezone.utc)
    assert parse_date("weekend", sunday).date().isoformat() == "2024-01-27"


def test_explicit_dates():
    assert parse_date("2024-03-01", NOW).date().isoformat() == "2024-03-01"
    assert parse_date("24.12.2024", NOW).date().isoformat() == "2024-12-24"


def test_unparseable_date_is_base():
    assert parse_date("sometime soon", NOW) == NOW


def test_french_hour_notation():
    assert normalize_time("14h30") == "14:30"
    assert normalize_time("8h") == "08:00"
    parsed = parse_datetime("demain", "14h30", now=NOW)
    assert parsed["date"].date().isoformat() == "2024-01-16"
    assert (parsed["departure_time"].hour, parsed["departure_time"].minute) == (14, 30)
