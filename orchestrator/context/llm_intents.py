"""
Intent extraction through the language model, with the rule-based
extractor as fallback. Enabled with LLM_INTENT_EXTRACTION.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from ..prompts import PROMPTS, substitute_prompt_variables
from .intents import MAX_CONFIDENCE, MIN_CONFIDENCE, extract_intent
from .types import Intent


def _safe_json_parse(txt: str) -> Dict[str, Any]:
    try:
        return json.loads(txt)
    except Exception:
        m = re.search(r"\{.*\}", txt, re.DOTALL)
        if m:
            try:
                return json.loads(m.group(0))
            except Exception:
                return {}
        return {}


async def extract_intent_with_llm(message: str, llm: Any, user_language: Optional[str] = None) -> Intent:
    if not getattr(llm, "configured", False):
        logging.warning("LLM intent extraction requested without an API key, using rules")
        return extract_intent(message, user_language)

    template = PROMPTS.get_prompt("orchestration", "intent-extraction")
    prompt = substitute_prompt_variables(
        template.template if template else "{{message}}",
        {"message": message, "language": user_language or "not specified"},
    )

    try:
        parsed = _safe_json_parse(await llm.generate(prompt, json_mode=True))
        if not parsed.get("intent") or not parsed.get("confidence"):
            raise ValueError(f"Invalid LLM intent response: {parsed!r}")
        intent = Intent(
            type=parsed["intent"],
            confidence=min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, float(parsed["confidence"]))),
            extracted_entities=parsed.get("entities") or {},
            detected_languages=[user_language] if user_language else ["en"],
            matched_keywords=["llm_extraction"],
        )
    except Exception as e:
        logging.warning("LLM intent extraction failed (%s), falling back to rules", e)
        return extract_intent(message, user_language)

    logging.info("LLM intent %s (%.2f): %s", intent.type, intent.confidence, parsed.get("reasoning", ""))
    return intent
