"""
Multi-intent extraction.

"Show trains from Zurich to Bern and the weather in Bern" is split into
segments on sentence punctuation and conjunctions, and each segment gets its
own intent. Place names that contain a conjunction or a dot are protected.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .intents import extract_intent
from .types import Intent

CONJUNCTIONS = {
    "en": ["and", "also", "then", "plus", "additionally"],
    "de": ["und", "auch", "dann", "außerdem", "zusätzlich"],
    "fr": ["et", "aussi", "puis", "également", "en plus"],
    "it": ["e", "anche", "poi", "inoltre", "in più"],
}

PROTECTED_PHRASES = ["st. gallen", "st gallen", "saint gallen", "st. moritz", "baden-baden"]

MIN_SEGMENT_WORDS = 3
MIN_SEGMENT_CONFIDENCE = 0.5


@dataclass
class QuerySegment:
    text: str
    start: int
    end: int


def _protected_ranges(lowered: str) -> List[Tuple[int, int]]:
    ranges = []
    for phrase in PROTECTED_PHRASES:
        index = lowered.find(phrase)
        while index != -1:
            ranges.append((index, index + len(phrase)))
            index = lowered.find(phrase, index + 1)
    return ranges


def segment_query(message: str, language: Optional[str] = "en") -> List[QuerySegment]:
    ranges = _protected_ranges(message.lower())

    def is_protected(index: int) -> bool:
        return any(start <= index < end for start, end in ranges)

    split_points = {0}
    for m in re.finditer(r"[.?!]", message):
        if not is_protected(m.start()):
            split_points.add(m.start() + 1)

    for conjunction in CONJUNCTIONS.get(language or "en", CONJUNCTIONS["en"]):
        for m in re.finditer(rf"\s+{re.escape(conjunction)}\s+", message, re.IGNORECASE):
            word_start = m.start() + m.group(0).lower().index(conjunction)
            if not is_protected(word_start):
                split_points.add(m.end())

    points = sorted(split_points)
    segments = []
    for i, start in enumerate(points):
        end = points[i + 1] if i + 1 < len(points) else len(message)
        text = message[start:end].strip()
        if text and len(text.split()) >= MIN_SEGMENT_WORDS:
            segments.append(QuerySegment(text=text, start=start, end=end))

    return segments or [QuerySegment(text=message.strip(), start=0, end=len(message))]


def deduplicate_intents(intents: List[Intent]) -> List[Intent]:
    """Keep the most confident intent per type, then restore priority order.

    Weather and snow intents are different types and may both stay.
    """
    if len(intents) <= 1:
        return intents

    kept: List[Intent] = []
    seen = set()
    for intent in sorted(intents, key=lambda i: i.confidence, reverse=True):
        if intent.type not in seen:
            kept.append(intent)
            seen.add(intent.type)
    return sorted(kept, key=lambda i: i.priority or 0)


def extract_multiple_intents(message: str, user_language: Optional[str] = None) -> List[Intent]:
    segments = segment_query(message, user_language)

    if len(segments) == 1:
        intent = extract_intent(message, user_language)
        return [intent.model_copy(update={"priority": 1, "segment": message})]

    intents = [
        extract_intent(segment.text, user_language).model_copy(update={"priority": i + 1, "segment": segment.text})
        for i, segment in enumerate(segments)
    ]
    confident = [intent for intent in intents if intent.confidence >= MIN_SEGMENT_CONFIDENCE]
    deduplicated = deduplicate_intents(confident)
    logging.info(
        "Extracted %d intent(s) from %d segment(s): %s",
        len(deduplicated),
        len(segments),
        ", ".join(f"{i.type}({i.confidence:.2f})" for i in deduplicated),
    )
    return deduplicated
