ORCHESTRATION_KEYWORDS = [
    "plan", "schedule", "how to get", "recommend", "suggest", "best way", "complete", "entire",
    "departures", "arrivals", "timetable",
    "formation", "fromation", "composition", "wagon", "sector", "coach", "units",
    "information", "from", "to", "trip", "connection", "facilities",
    "weather", "rain", "snow", "forecast",
    "eco", "environmental", "carbon", "co2", "emissions", "impact", "umwelt", "einfluss",
    "sustainability", "green",
]


def requires_orchestration(message: str) -> bool:
    """Substring match, so 'to' also fires inside longer words."""
    lowered = message.lower()
    return any(keyword in lowered for keyword in ORCHESTRATION_KEYWORDS)
