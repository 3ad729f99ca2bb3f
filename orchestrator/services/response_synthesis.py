import json
from typing import Any, Dict

from ..prompts import PROMPTS, PromptLoader, substitute_prompt_variables

LANGUAGE_NAMES = {"de": "German", "fr": "French", "it": "Italian"}


def language_name(language: str) -> str:
    return LANGUAGE_NAMES.get(language, "English")


class ResponseSynthesisService:
    def __init__(self, llm: Any, prompts: PromptLoader = PROMPTS) -> None:
        self.llm = llm
        self.prompts = prompts

    def build_prompt(
        self,
        message: str,
        formatted_results: str,
        summary: Dict[str, Any],
        language: str,
        voice_enabled: bool = False,
    ) -> str:
        name = "voice-response" if voice_enabled else "orchestration-response"
        template = self.prompts.get_prompt("orchestration", name)
        if template is None:
            raise LookupError(f"Missing orchestration prompt {name}")
        return substitute_prompt_variables(template.template, {
            "message": message,
            "formattedResults": formatted_results,
            "summary": json.dumps(summary, indent=2, ensure_ascii=False, default=str),
            "language": language_name(language),
        })

    async def synthesize(
        self,
        message: str,
        formatted_results: str,
        summary: Dict[str, Any],
        language: str,
        voice_enabled: bool = False,
    ) -> str:
        prompt = self.build_prompt(message, formatted_results, summary, language, voice_enabled)
        return await self.llm.generate(prompt)
