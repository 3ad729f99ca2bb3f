"""
Intent keyword dictionaries for English, German, French and Italian.

Each intent has, per language, primary keywords, their variations, multi-word
phrases and contextual words. Contextual words (bare prepositions and the
like) only count when a caller asks for them.
"""
from typing import Dict, Iterable, List

LANGUAGES = ("en", "de", "fr", "it")

KeywordSet = Dict[str, List[str]]

INTENT_KEYWORDS: Dict[str, Dict[str, KeywordSet]] = {
    "trip_planning": {
        "en": {
            "primary": ["train", "connection", "trip", "travel", "journey", "route"],
            "variations": ["trains", "connections", "trips", "travels", "journeys", "routes"],
            "phrases": ["get to", "go to", "travel to", "going from", "how do i get", "how to get"],
            "contextual": ["from", "to"],
        },
        "de": {
            "primary": ["zug", "bahn", "verbindung", "reise", "fahrt", "route"],
            "variations": ["züge", "bahnen", "verbindungen", "reisen", "fahrten", "routen"],
            "phrases": ["fahren nach", "reisen nach", "fahrt von", "wie komme ich", "wie kommt man"],
            "contextual": ["von", "nach", "ab", "bis"],
        },
        "fr": {
            "primary": ["train", "connexion", "voyage", "trajet", "itinéraire"],
            "variations": ["trains", "connexions", "voyages", "trajets", "itinéraires"],
            "phrases": ["aller à", "aller de", "voyager à", "comment aller", "pour aller"],
            "contextual": ["de", "à", "depuis", "pour", "vers"],
        },
        "it": {
            "primary": ["treno", "collegamento", "viaggio", "percorso", "itinerario"],
            "variations": ["treni", "collegamenti", "viaggi", "percorsi", "itinerari"],
            "phrases": ["andare a", "andare da", "viaggiare a", "come arrivare", "per andare"],
            "contextual": ["da", "a", "per", "verso"],
        },
    },
    "weather_check": {
        "en": {
            "primary": ["weather", "forecast", "temperature", "rain", "sunny", "cloudy", "wind", "humidity"],
            "variations": ["weathers", "forecasts", "temperatures", "raining", "windy"],
            "phrases": ["what is the weather", "how is the weather", "weather forecast"],
            "contextual": ["in", "at"],
        },
        "de": {
            "primary": ["wetter", "wettervorhersage", "temperatur", "regen", "sonnig", "bewölkt", "wind"],
            "variations": ["temperaturen", "regnet", "windig"],
            "phrases": ["wie ist das wetter", "wie wird das wetter", "wettervorhersage für"],
            "contextual": ["in", "bei"],
        },
        "fr": {
            "primary": ["météo", "prévisions", "température", "pluie", "ensoleillé", "nuageux", "vent"],
            "variations": ["prévision", "températures", "pleut", "venteux"],
            "phrases": ["quel temps fait-il", "quelle est la météo", "prévisions météo"],
            "contextual": ["à", "dans"],
        },
        "it": {
            "primary": ["meteo", "previsioni", "temperatura", "pioggia", "soleggiato", "nuvoloso", "vento"],
            "variations": ["previsione", "temperature", "piove", "ventoso"],
            "phrases": ["che tempo fa", "come è il tempo", "previsioni meteo"],
            "contextual": ["a", "in"],
        },
    },
    "snow_conditions": {
        "en": {
            "primary": ["snow", "ski", "skiing", "snowboard", "slopes", "powder"],
            "variations": ["snowing", "skis", "snowboarding", "slope"],
            "phrases": ["snow conditions", "ski conditions", "how much snow", "snow depth", "ski resort"],
            "contextual": ["in", "at"],
        },
        "de": {
            "primary": ["schnee", "ski", "skifahren", "snowboard", "pisten", "pulver"],
            "variations": ["schneit", "skis", "snowboarden", "piste"],
            "phrases": ["schneebedingungen", "skibedingungen", "wie viel schnee", "schneehöhe", "skigebiet"],
            "contextual": ["in", "bei"],
        },
        "fr": {
            "primary": ["neige", "ski", "skier", "snowboard", "pistes", "poudreuse"],
            "variations": ["skis", "faire du ski", "piste"],
            "phrases": ["conditions de neige", "conditions de ski", "combien de neige", "hauteur de neige", "station de ski"],
            "contextual": ["à", "dans"],
        },
        "it": {
            "primary": ["neve", "sci", "sciare", "snowboard", "piste", "neve fresca"],
            "variations": ["nevica", "sciando", "pista"],
            "phrases": ["condizioni della neve", "condizioni sciistiche", "quanta neve", "altezza neve", "stazione sciistica"],
            "contextual": ["a", "in"],
        },
    },
    "station_search": {
        "en": {
            "primary": ["station", "stop", "platform", "departures", "arrivals", "arriving", "departing"],
            "variations": ["stations", "stops", "platforms", "departure", "arrival"],
            "phrases": [
                "train station",
                "railway station",
                "show departures",
                "show arrivals",
                "trains arriving",
                "train arriving",
            ],
            "contextual": ["at", "from", "in"],
        },
        "de": {
            "primary": ["bahnhof", "haltestelle", "gleis", "abfahrt", "ankunft"],
            "variations": ["bahnhöfe", "haltestellen", "gleise", "abfahrten", "ankünfte"],
            "phrases": ["zeig abfahrten", "zeig ankünfte", "abfahrten von", "ankünfte in"],
            "contextual": ["am", "vom", "in", "bei"],
        },
        "fr": {
            "primary": ["gare", "arrêt", "quai", "départ", "arrivée"],
            "variations": ["gares", "arrêts", "quais", "départs", "arrivées"],
            "phrases": ["affiche les départs", "affiche les arrivées", "départs de", "arrivées à"],
            "contextual": ["à", "de", "dans"],
        },
        "it": {
            "primary": ["stazione", "fermata", "binario", "partenza", "arrivo"],
            "variations": ["stazioni", "fermate", "binari", "partenze", "arrivi"],
            "phrases": ["dov'è la stazione", "mostra le partenze", "mostra gli arrivi", "partenze da", "arrivi a"],
            "contextual": ["a", "da", "in", "alla", "di"],
        },
    },
    "train_formation": {
        "en": {
            "primary": ["formation", "composition", "wagon", "sector", "coach", "unit"],
            "variations": ["formations", "wagons", "sectors", "coaches", "units"],
            "phrases": ["train formation", "which sector", "which coach"],
            "contextual": ["information", "info"],
        },
        "de": {
            "primary": ["formation", "komposition", "wagen", "sektor", "traktion", "einheit"],
            "variations": ["formationen", "kompositionen", "sektoren", "einheiten"],
            "phrases": ["zugformation", "welcher sektor", "welcher wagen"],
            "contextual": ["information", "info"],
        },
        "fr": {
            "primary": ["formation", "composition", "wagon", "secteur", "voiture", "unité"],
            "variations": ["formations", "compositions", "wagons", "secteurs", "voitures", "unités"],
            "phrases": ["formation du train", "quel secteur", "quelle voiture"],
            "contextual": ["information", "info"],
        },
        "it": {
            "primary": ["formazione", "composizione", "vagone", "settore", "carrozza", "unità"],
            "variations": ["formazioni", "composizioni", "vagoni", "settori", "carrozze"],
            "phrases": ["formazione del treno", "quale settore", "quale carrozza"],
            "contextual": ["informazione", "info"],
        },
    },
}

# Checked in this order; snow comes before weather so ski questions are not
# scored as plain weather.
SCORED_INTENTS = ("station_search", "train_formation", "snow_conditions", "weather_check", "trip_planning")


def get_all_keywords(intent_type: str, languages: Iterable[str], include_contextual: bool = False) -> List[str]:
    keywords: List[str] = []
    per_language = INTENT_KEYWORDS.get(intent_type, {})
    for lang in languages:
        keyword_set = per_language.get(lang)
        if not keyword_set:
            continue
        keywords.extend(keyword_set["primary"])
        keywords.extend(keyword_set["variations"])
        keywords.extend(keyword_set["phrases"])
        if include_contextual:
            keywords.extend(keyword_set["contextual"])
    # keep order, drop duplicates shared between languages
    return list(dict.fromkeys(keywords))
