"""
Multilingual entity patterns: origin, destination and location prepositions,
date and time expressions, and travel preferences.
"""
import re
from typing import Any, Dict, Iterable, List, Optional, Pattern

ENTITY_PREPOSITIONS: Dict[str, Dict[str, List[str]]] = {
    "origin": {
        "en": ["from", "starting from", "leaving from", "departing from", "departure from"],
        "de": ["von", "ab", "ausgehend von", "abfahrt von", "abfahrt ab"],
        "fr": ["de", "depuis", "en partant de", "départ de", "au départ de"],
        "it": ["da", "partendo da", "in partenza da", "partenza da"],
    },
    "destination": {
        "en": ["to", "going to", "heading to", "arriving at", "arriving in", "arrival at"],
        "de": ["nach", "bis", "richtung", "ankunft in", "ankunft", "bis nach"],
        "fr": ["à", "pour", "vers", "direction", "arrivée à", "arrivée"],
        "it": ["a", "per", "verso", "direzione", "arrivo a", "arrivo"],
    },
    "location": {
        "en": ["in", "at", "near", "for"],
        "de": ["in", "bei", "nahe", "für"],
        "fr": ["à", "dans", "près de"],
        "it": ["a", "in", "vicino a", "presso"],
    },
}

# Words that end an entity name.
STOP_WORDS = [
    "at", "um", "à", "alle", "verso",
    "to", "nach", "bis", "pour", "a", "per", "from", "von", "ab", "de", "depuis", "da", "via", "in", "on",
    "tomorrow", "morgen", "demain", "domani",
    "today", "heute", "aujourd'hui", "oggi",
    "yesterday", "gestern", "hier", "ieri",
    "weekend", "wochenende", "week-end", "fine settimana",
    "this", "next", "dieses", "nächste", "ce", "questo",
    "with", "and", "et", "e", "und",
]

_WEEKDAYS = {
    "en": "monday|tuesday|wednesday|thursday|friday|saturday|sunday",
    "de": "montag|dienstag|mittwoch|donnerstag|freitag|samstag|sonntag",
    "fr": "lundi|mardi|mercredi|jeudi|vendredi|samedi|dimanche",
    "it": "lunedì|martedì|mercoledì|giovedì|venerdì|sabato|domenica",
}
_MONTHS = {
    "en": "january|february|march|april|may|june|july|august|september|october|november|december",
    "de": "januar|februar|märz|april|mai|juni|juli|august|september|oktober|november|dezember",
    "fr": "janvier|février|mars|avril|mai|juin|juillet|août|septembre|octobre|novembre|décembre",
    "it": "gennaio|febbraio|marzo|aprile|maggio|giugno|luglio|agosto|settembre|ottobre|novembre|dicembre",
}

# Most specific first.
DATE_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": [
        re.compile(rf"\b(next|this)\s+(week|month|{_WEEKDAYS['en']})\b", re.IGNORECASE),
        re.compile(rf"\b({_MONTHS['en']})\s+\d{{1,2}}\b", re.IGNORECASE),
        re.compile(r"\b(this\s+weekend|weekend)\b", re.IGNORECASE),
        re.compile(r"\b(today|tomorrow|yesterday)\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}[/\-.]\d{1,2}(?:[/\-.]\d{2,4})?)\b"),
        re.compile(rf"\b({_WEEKDAYS['en']})\b", re.IGNORECASE),
    ],
    "de": [
        re.compile(rf"\b(nächste|nächster|diese|dieser)\s+(woche|monat|{_WEEKDAYS['de']})\b", re.IGNORECASE),
        re.compile(rf"\b({_MONTHS['de']})\s+\d{{1,2}}\b", re.IGNORECASE),
        re.compile(r"\b(dieses\s+wochenende|wochenende)\b", re.IGNORECASE),
        re.compile(r"\b(heute|morgen|gestern|übermorgen)\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}\.\d{1,2}(?:\.\d{2,4})?)\b"),
        re.compile(rf"\b({_WEEKDAYS['de']})\b", re.IGNORECASE),
    ],
    "fr": [
        re.compile(rf"\b(prochain|prochaine|ce|cette)\s+(semaine|mois|{_WEEKDAYS['fr']})\b", re.IGNORECASE),
        re.compile(rf"\b({_MONTHS['fr']})\s+\d{{1,2}}\b", re.IGNORECASE),
        re.compile(r"\b(ce\s+week-end|week-end)\b", re.IGNORECASE),
        re.compile(r"\b(aujourd'hui|demain|hier|après-demain)\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}[/\-]\d{1,2}(?:[/\-]\d{2,4})?)\b"),
        re.compile(rf"\b({_WEEKDAYS['fr']})\b", re.IGNORECASE),
    ],
    "it": [
        re.compile(rf"\b(prossimo|prossima|questo|questa)\s+(settimana|mese|{_WEEKDAYS['it']})\b", re.IGNORECASE),
        re.compile(rf"\b({_MONTHS['it']})\s+\d{{1,2}}\b", re.IGNORECASE),
        re.compile(r"\b(questo\s+fine\s+settimana|fine\s+settimana)\b", re.IGNORECASE),
        re.compile(r"\b(oggi|domani|ieri|dopodomani)\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}[/\-]\d{1,2}(?:[/\-]\d{2,4})?)\b"),
        re.compile(rf"\b({_WEEKDAYS['it']})\b", re.IGNORECASE),
    ],
}

# 12h forms before 24h forms, so "2:30 pm" is not read as "2:30".
TIME_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "en": [
        re.compile(r"\bat\s+(\d{1,2}(?::\d{2})?\s*(?:am|pm))\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}(?::\d{2})?\s*(?:am|pm))\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}:\d{2})\b"),
        re.compile(r"\b(morning|afternoon|evening|night)\b", re.IGNORECASE),
    ],
    "de": [
        re.compile(r"\bum\s+(\d{1,2}(?::\d{2})?)\s*uhr\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}:\d{2})\b"),
        re.compile(r"\b(morgens|vormittags|mittags|nachmittags|abends|nachts)\b", re.IGNORECASE),
    ],
    "fr": [
        re.compile(r"\bà\s+(\d{1,2}(?:[h:]\d{2}|h)?)\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}(?:[h:]\d{2}|h))\b", re.IGNORECASE),
        re.compile(r"\b(matin|après-midi|soir|nuit)\b", re.IGNORECASE),
    ],
    "it": [
        re.compile(r"\balle\s+(\d{1,2}(?::\d{2})?)\b", re.IGNORECASE),
        re.compile(r"\b(\d{1,2}:\d{2})\b"),
        re.compile(r"\b(mattina|pomeriggio|sera|notte)\b", re.IGNORECASE),
    ],
}

_PREFERENCE_PATTERNS = [
    (re.compile(r"\b(eco|eco-friendly|green|sustainable|umweltfreundlich|nachhaltig|écologique|ecologico)\b", re.IGNORECASE), ("travel_style", "eco")),
    (re.compile(r"\b(fastest|quickest|schnellste|plus rapide|più veloce)\b", re.IGNORECASE), ("travel_style", "fastest")),
    (re.compile(r"\b(cheapest|günstigste|moins cher|più economico)\b", re.IGNORECASE), ("travel_style", "cheapest")),
    (re.compile(r"\b(comfortable|bequem|confortable|comodo)\b", re.IGNORECASE), ("travel_style", "comfortable")),
    (re.compile(r"\b(wheelchair|rollstuhl|fauteuil roulant|sedia a rotelle)\b", re.IGNORECASE), ("accessibility", "wheelchair")),
    (re.compile(r"\b(bike|bicycle|fahrrad|velo|vélo|bici|bicicletta)\b", re.IGNORECASE), ("transport", "bike_transport")),
    (re.compile(r"\b(first class|1st class|erste klasse|1\. klasse|première classe|prima classe)\b", re.IGNORECASE), ("transport", "first_class")),
    (re.compile(r"\b(no bus|avoid bus|without bus|ohne bus|sans bus|senza autobus)\b", re.IGNORECASE), ("transport", "avoid_bus")),
]

_MARKUP = re.compile(r"\*\*|_|#")


def _prepositions(entity_type: str, languages: Iterable[str]) -> List[str]:
    preps: List[str] = []
    for lang in languages:
        preps.extend(ENTITY_PREPOSITIONS[entity_type].get(lang, []))
    # longest first so "departing from" wins over "from"
    return sorted(dict.fromkeys(preps), key=len, reverse=True)


def build_entity_regex(entity_type: str, languages: Iterable[str]) -> Pattern[str]:
    """Group 1 is the preposition, group 2 the entity up to the next stop word."""
    preps = "|".join(re.escape(p) for p in _prepositions(entity_type, languages))
    stops = "|".join(re.escape(w) for w in STOP_WORDS)
    return re.compile(rf"(?:^|\s)({preps})\s+(.+?)(?=\s(?:{stops})(?:\s|$)|$|[?!,])", re.IGNORECASE)


def build_simple_to_pattern(languages: Iterable[str]) -> Pattern[str]:
    """'X to Y', stopping Y at a time or date word."""
    preps = "|".join(re.escape(p) for p in _prepositions("destination", languages))
    return re.compile(
        rf"^(.+?)\s+(?:{preps})\s+(.+?)(?=\s+(?:at|um|à|alle|via|on|tomorrow|today|morgen|demain|next|this|\d)|$|[?!,])",
        re.IGNORECASE,
    )


def extract_date(message: str, languages: Iterable[str]) -> Optional[str]:
    for lang in languages:
        for pattern in DATE_PATTERNS.get(lang, []):
            m = pattern.search(message)
            if m:
                # the full match keeps modifiers such as "next" in "next monday"
                return m.group(0)
    return None


def extract_time(message: str, languages: Iterable[str]) -> Optional[str]:
    for lang in languages:
        for pattern in TIME_PATTERNS.get(lang, []):
            m = pattern.search(message)
            if m:
                return m.group(1)
    return None


def clean_location(text: str) -> str:
    """Strip markdown markup and title-case each word of a place name."""
    text = _MARKUP.sub("", text).strip()
    pieces = re.split(r"(\s+|-|'|’)", text)
    return "".join(
        piece if re.fullmatch(r"\s+|-|'|’", piece) or not piece else piece[0].upper() + piece[1:].lower()
        for piece in pieces
    )


def extract_preferences(message: str) -> Dict[str, Any]:
    """Travel preferences mentioned in the message, shaped like UserPreferences."""
    prefs: Dict[str, Any] = {}
    for pattern, (group, value) in _PREFERENCE_PATTERNS:
        if not pattern.search(message):
            continue
        if group == "travel_style":
            prefs.setdefault("travel_style", value)
        else:
            prefs.setdefault(group, {})[value] = True
    return prefs


USER_LOCATION = "USER_LOCATION"

LOCATION_KEYWORDS: Dict[str, List[str]] = {
    "en": ["here", "my location", "current location"],
    "de": ["hier", "meinem standort", "aktueller standort"],
    "fr": ["ici", "ma position"],
    "it": ["qui", "qua", "mia posizione"],
}


def is_location_keyword(text: str, languages: Iterable[str]) -> bool:
    """'here', 'hier', 'ici', 'qui'... stand for the user's own position."""
    word = text.strip().lower()
    if not word:
        return False
    return any(word in LOCATION_KEYWORDS.get(lang, []) for lang in languages)
