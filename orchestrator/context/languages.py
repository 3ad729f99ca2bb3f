import re
import unicodedata
from typing import Iterable, List, Optional

from .keywords import LANGUAGES

_LANGUAGE_INDICATORS = {
    "de": re.compile(r"\b(zug|züge|bahn|nach|von|morgen|heute|zürich|genf|wetter|bahnhof|abfahrt|ankunft)\b", re.IGNORECASE),
    "fr": re.compile(r"\b(train|depuis|demain|aujourd'hui|gare|genève|lausanne|météo|départ|arrivée)\b", re.IGNORECASE),
    "it": re.compile(r"\b(treno|treni|viaggio|oggi|domani|stazione|zurigo|ginevra|meteo|partenza|arrivo)\b", re.IGNORECASE),
    "en": re.compile(r"\b(train|trains|from|tomorrow|today|station|zurich|geneva|weather|departure|arrival)\b", re.IGNORECASE),
}


def detect_message_language(message: str, user_language: Optional[str] = None) -> List[str]:
    """Languages whose indicator words appear in the message, user's first.

    The user's language is moved to the front when detected, appended as a
    fallback when other languages were detected, and used alone when nothing
    was. English is the last resort.
    """
    detected = [lang for lang, pattern in _LANGUAGE_INDICATORS.items() if pattern.search(message)]

    if user_language in LANGUAGES:
        if user_language in detected:
            detected.remove(user_language)
            detected.insert(0, user_language)
        else:
            detected.append(user_language)

    return detected or ["en"]


def normalize_for_matching(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return stripped.replace("ß", "ss")


def _matches(keyword: str, text: str) -> bool:
    if " " in keyword:
        return keyword in text
    # boundary at the start only, so 'station' matches 'stations' but 'rain' misses 'trains'
    return re.search(rf"\b{re.escape(keyword)}", text) is not None


def matched_keywords(keywords: Iterable[str], text: str, use_normalization: bool = False) -> List[str]:
    prepare = normalize_for_matching if use_normalization else str.lower
    search_text = prepare(text)
    return [kw for kw in keywords if _matches(prepare(kw), search_text)]
