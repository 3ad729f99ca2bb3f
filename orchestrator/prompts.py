"""
Prompt templates bundled as JSON, and helpers that fill them from the
conversation context.
"""
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel

from .context.types import ConversationContext

TEMPLATE_DIR = Path(__file__).parent / "prompt_templates"
CATEGORIES = ("mcp", "orchestration")

_VARIABLE = re.compile(r"\{\{([^}]+)\}\}")


class PromptTemplate(BaseModel):
    name: str
    description: str = ""
    template: str
    variables: List[str] = []


class PromptLoader:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        self.template_dir = template_dir
        self._cache: Dict[str, Dict[str, PromptTemplate]] = {}

    def _load(self) -> None:
        if self._cache:
            return
        for category in CATEGORIES:
            path = self.template_dir / f"{category}.json"
            with path.open(encoding="utf-8") as fh:
                raw = json.load(fh)
            self._cache[category] = {
                key: PromptTemplate(**value) for key, value in raw.get("prompts", {}).items()
            }

    def get_prompt(self, category: str, name: str) -> Optional[PromptTemplate]:
        self._load()
        prompts = self._cache.get(category)
        if prompts is None:
            logging.warning("Prompt category not found: %s", category)
            return None
        prompt = prompts.get(name)
        if prompt is None:
            logging.warning("Prompt not found: %s/%s", category, name)
        return prompt

    def get_all_prompts(self, category: str) -> List[PromptTemplate]:
        self._load()
        return list(self._cache.get(category, {}).values())

    def has_prompt(self, category: str, name: str) -> bool:
        self._load()
        return name in self._cache.get(category, {})

    def reload(self) -> None:
        self._cache.clear()
        self._load()

    @staticmethod
    def validate_prompt(prompt: PromptTemplate) -> bool:
        """Every {{variable}} used in the template must be declared."""
        if not prompt.name or not prompt.template:
            return False
        undeclared = set(_VARIABLE.findall(prompt.template)) - set(prompt.variables)
        if undeclared:
            logging.warning("Undeclared variables %s in prompt %s", sorted(undeclared), prompt.name)
            return False
        return True


PROMPTS = PromptLoader()


def substitute_prompt_variables(template: str, variables: Dict[str, str]) -> str:
    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", value or "")
    return _VARIABLE.sub("(not specified)", result)


def _requirements(context: ConversationContext) -> str:
    prefs = context.preferences
    requirements = []
    if prefs.accessibility and prefs.accessibility.wheelchair:
        requirements.append("wheelchair accessible")
    if prefs.transport and prefs.transport.bike_transport:
        requirements.append("bike transport")
    return ", ".join(requirements) or "none"


def build_prompt_from_context(
    prompt_name: str,
    context: ConversationContext,
    additional: Optional[Dict[str, str]] = None,
    loader: PromptLoader = PROMPTS,
) -> Optional[str]:
    template = loader.get_prompt("mcp", prompt_name)
    if template is None:
        return None

    origin = context.location.origin if context.location else None
    destination = context.location.destination if context.location else None
    variables = {
        "origin": origin.name if origin else "your location",
        "destination": destination.name if destination else "destination",
        "departureTime": datetime.now().strftime("%Y-%m-%d %H:%M"),
        "travelStyle": context.preferences.travel_style or "balanced",
        "requirements": _requirements(context),
    }
    variables.update(additional or {})
    return substitute_prompt_variables(template.template, variables)


def select_prompt_for_context(context: ConversationContext) -> str:
    prefs = context.preferences
    if prefs.transport and prefs.transport.bike_transport:
        return "bike-trip-planning"
    if prefs.accessibility:
        return "accessibility-guidance"
    if prefs.travel_style == "eco":
        return "eco-friendly-travel"
    return "plan-trip"


def get_system_prompt_enhancement(context: ConversationContext, loader: PromptLoader = PROMPTS) -> str:
    template = loader.get_prompt("mcp", select_prompt_for_context(context))
    if template is None:
        return ""
    considerations = "\n".join(template.template.split("\n")[:10])
    return (
        "\nSPECIALIZED GUIDANCE:\n"
        f'You are using the "{template.name}" planning mode.\n'
        f"{template.description}\n\n"
        "Key considerations:\n"
        f"{considerations}\n"
    )
