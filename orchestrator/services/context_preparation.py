import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..context.entities import USER_LOCATION
from ..context.llm_intents import extract_intent_with_llm
from ..context.manager import update_context_from_message
from ..context.multi_intent import extract_multiple_intents
from ..context.sessions import SessionStore
from ..context.types import ConversationContext, Intent


@dataclass
class PreparedContext:
    session_context: ConversationContext
    intents: List[Intent]
    primary_intent: Intent
    updated_context: ConversationContext


def merge_markdown_intent(intent: Intent, parsed_intent: Optional[Dict[str, Any]]) -> Intent:
    """Attach preferences and sub-queries the UI parsed from markdown input."""
    if not parsed_intent or not parsed_intent.get("hasMarkdown"):
        return intent
    structured = parsed_intent.get("structuredData") or {}
    return intent.model_copy(update={
        "preferences": structured.get("preferences") or [],
        "sub_queries": parsed_intent.get("subQueries") or [],
    })


def replace_user_location(intent: Intent, nearest_station: Optional[str]) -> Intent:
    if not nearest_station:
        return intent
    entities = dict(intent.extracted_entities)
    for key in ("origin", "destination"):
        if entities.get(key) == USER_LOCATION:
            logging.info("Using nearest station %s as %s", nearest_station, key)
            entities[key] = nearest_station
    return intent.model_copy(update={"extracted_entities": entities})


class ContextPreparationService:
    def __init__(self, sessions: SessionStore, llm: Any = None, use_llm_intents: bool = False) -> None:
        self.sessions = sessions
        self.llm = llm
        self.use_llm_intents = use_llm_intents

    async def _extract(self, message: str, language: str) -> List[Intent]:
        if self.use_llm_intents and self.llm is not None:
            intent = await extract_intent_with_llm(message, self.llm, language)
            return [intent.model_copy(update={"priority": 1, "segment": message})]
        return extract_multiple_intents(message, language)

    async def prepare(
        self,
        message: str,
        session_id: str,
        language: str,
        parsed_intent: Optional[Dict[str, Any]] = None,
        nearest_station: Optional[str] = None,
    ) -> PreparedContext:
        session_context = self.sessions.get(session_id, language)

        intents = [
            replace_user_location(merge_markdown_intent(intent, parsed_intent), nearest_station)
            for intent in await self._extract(message, language)
        ]
        primary = intents[0]
        entities = primary.extracted_entities

        updated = update_context_from_message(
            session_context,
            message,
            origin=entities.get("origin"),
            destination=entities.get("destination"),
            date=entities.get("date"),
            time=entities.get("time"),
            preferences=entities.get("preferences"),
            intent=primary,
        )
        self.sessions.set(session_id, updated)

        return PreparedContext(
            session_context=session_context,
            intents=intents,
            primary_intent=primary,
            updated_context=updated,
        )
