"""
Thin wrapper around google.generativeai.

The rest of the orchestrator only sees plain strings, ChatTurn objects and
dict arguments, so tests can swap in a fake gateway without touching the SDK.
"""
import json
import logging
import time
from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import google.generativeai as genai

from .tool_schemas import gemini_tools

TEXT_CONFIG = {"temperature": 0.0, "top_p": 1, "top_k": 1}
JSON_CONFIG = {"response_mime_type": "application/json", "temperature": 0.0, "top_p": 1, "top_k": 1}


@dataclass
class FunctionCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatTurn:
    text: str = ""
    function_calls: List[FunctionCall] = field(default_factory=list)


def _log(fn: str, started: float, ok: bool, **extra: Any) -> None:
    logging.info(json.dumps({
        "ts": datetime.utcnow().isoformat(),
        "service": "gemini",
        "fn": fn,
        "latency_ms": f"{(time.monotonic() - started) * 1000:.2f}",
        "ok": ok,
        **extra,
    }))


def _turn_from_response(response: Any) -> ChatTurn:
    """Collect text and function calls from the first candidate.

    response.text raises when a part holds a function call, so parts are read directly.
    """
    turn = ChatTurn()
    for candidate in list(response.candidates)[:1]:
        for part in candidate.content.parts:
            if part.text:
                turn.text += part.text
            call = part.function_call
            if call.name:
                args = type(call).to_dict(call).get("args") or {}
                turn.function_calls.append(FunctionCall(name=call.name, args=dict(args)))
    return turn


def _function_response_payload(data: Any) -> Dict[str, Any]:
    # FunctionResponse.response must be an object
    if isinstance(data, dict):
        return data
    return {"result": data}


class ChatSession:
    def __init__(self, chat: Any):
        self._chat = chat

    async def send(self, message: str) -> ChatTurn:
        started = time.monotonic()
        try:
            response = await self._chat.send_message_async(message)
        except Exception:
            _log("chat", started, False)
            raise
        _log("chat", started, True)
        return _turn_from_response(response)

    async def send_function_responses(self, responses: Sequence[Tuple[str, Any]]) -> ChatTurn:
        """Send every tool result back in one message."""
        parts = [
            genai.protos.Part(
                function_response=genai.protos.FunctionResponse(
                    name=name, response=_function_response_payload(data)
                )
            )
            for name, data in responses
        ]
        started = time.monotonic()
        try:
            response = await self._chat.send_message_async(parts)
        except Exception:
            _log("function_responses", started, False)
            raise
        _log("function_responses", started, True, count=len(parts))
        return _turn_from_response(response)

    async def stream(self, message: str) -> AsyncIterator[ChatTurn]:
        response = await self._chat.send_message_async(message, stream=True)
        async for chunk in response:
            yield _turn_from_response(chunk)


class LLMGateway:
    def __init__(self, api_key: Optional[str], model_name: str):
        self.api_key = api_key
        self.model_name = model_name
        if api_key:
            genai.configure(api_key=api_key)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _model(self, json_mode: bool = False, with_tools: bool = False) -> Any:
        return genai.GenerativeModel(
            self.model_name,
            generation_config=JSON_CONFIG if json_mode else TEXT_CONFIG,
            tools=gemini_tools() if with_tools else None,
        )

    async def generate(self, prompt: str, json_mode: bool = False) -> str:
        started = time.monotonic()
        try:
            response = await self._model(json_mode).generate_content_async(prompt)
        except Exception:
            _log("generate", started, False)
            raise
        _log("generate", started, True)
        return _turn_from_response(response).text

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        response_stream = await self._model().generate_content_async(prompt, stream=True)
        async for chunk in response_stream:
            text = getattr(chunk, "text", "") or ""
            if text:
                yield text

    def start_chat(self, system_prompt: str, history: Sequence[Dict[str, str]] = (), with_tools: bool = True) -> ChatSession:
        """Open a chat primed with the system prompt as a first exchange.

        history items are {"role": "user"|"assistant", "content": text}.
        """
        turns = [
            {"role": "user", "parts": [system_prompt]},
            {"role": "model", "parts": ["Understood. I'm ready to help with Swiss public transport planning!"]},
        ]
        for message in history:
            role = "user" if message.get("role") == "user" else "model"
            turns.append({"role": role, "parts": [message.get("content", "")]})
        return ChatSession(self._model(with_tools=with_tools).start_chat(history=turns))
