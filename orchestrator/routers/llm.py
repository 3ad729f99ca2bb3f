import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_runtime
from ..errors import ChatAPIError, RateLimitExceeded
from ..rate_limiter import rate_limit_headers
from ..state import Runtime


router = APIRouter()


class HistoryMessage(BaseModel):
    role: str
    content: str = ""


class ClientContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    language: str = "en"
    voice_enabled: bool = Field(False, alias="voiceEnabled")
    # a station name, or {"name": ...} from the map view
    nearest_station: Optional[Any] = Field(None, alias="nearestStation")

    def station_name(self) -> Optional[str]:
        if isinstance(self.nearest_station, dict):
            return self.nearest_station.get("name")
        return self.nearest_station or None


class StreamRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    history: List[HistoryMessage] = []
    context: ClientContext = Field(default_factory=ClientContext)
    session_id: Optional[str] = Field(None, alias="sessionId")
    parsed_intent: Optional[Dict[str, Any]] = Field(None, alias="parsedIntent")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    history: List[HistoryMessage] = []
    context: ClientContext = Field(default_factory=ClientContext)
    session_id: Optional[str] = Field(None, alias="sessionId")
    enable_function_calling: bool = Field(True, alias="enableFunctionCalling")
    enable_orchestration: Optional[bool] = Field(None, alias="enableOrchestration")


def rate_limit_user(request: Request) -> str:
    return (
        request.headers.get("x-session-id")
        or request.headers.get("x-forwarded-for")
        or (request.client.host if request.client else None)
        or "anonymous"
    )


def enforce_rate_limit(request: Request, runtime: Runtime = Depends(get_runtime)) -> Dict[str, str]:
    result = runtime.rate_limiter.check_rate_limit(rate_limit_user(request))
    headers = rate_limit_headers(result, runtime.rate_limiter.per_user.capacity)
    if not result.allowed:
        logging.warning("Rate limit exceeded for %s", rate_limit_user(request))
        raise RateLimitExceeded(result, headers)
    return headers


def _validate(message: Optional[str], runtime: Runtime, headers: Dict[str, str]) -> str:
    if not message or not message.strip():
        raise ChatAPIError(400, "Message is required", headers)
    if not runtime.llm.configured:
        raise ChatAPIError(500, "Gemini API key not configured. Please set GEMINI_API_KEY.", headers)
    return message


def _sse(frame: Dict[str, Any]) -> str:
    return f"data: {json.dumps(frame, ensure_ascii=False, default=str)}\n\n"


@router.post("/stream")
async def stream(
    req: StreamRequest,
    runtime: Runtime = Depends(get_runtime),
    headers: Dict[str, str] = Depends(enforce_rate_limit),
) -> StreamingResponse:
    message = _validate(req.message, runtime, headers)
    session_id = req.session_id or "default"
    history = [m.model_dump() for m in req.history]

    async def frames() -> AsyncIterator[str]:
        yield _sse({"type": "start", "data": {"sessionId": req.session_id}})
        try:
            async for frame in runtime.chat.stream_chat(
                message,
                session_id,
                history,
                req.context.language,
                req.context.voice_enabled,
                req.parsed_intent,
                req.context.station_name(),
            ):
                yield _sse(frame)
        except Exception as e:
            logging.exception("Stream failed for session %s", session_id)
            yield _sse({"type": "error", "data": {"error": str(e) or "Streaming failed"}})
        yield _sse({"type": "done", "data": {}})

    return StreamingResponse(
        frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", **headers},
    )


@router.post("/chat")
async def chat(
    req: ChatRequest,
    runtime: Runtime = Depends(get_runtime),
    headers: Dict[str, str] = Depends(enforce_rate_limit),
) -> JSONResponse:
    message = _validate(req.message, runtime, headers)
    history = [m.model_dump() for m in req.history]
    orchestrate = runtime.config.enable_orchestration if req.enable_orchestration is None else req.enable_orchestration

    try:
        if orchestrate:
            result = await runtime.chat.orchestrated_chat(
                message,
                req.session_id or "default",
                history,
                req.context.language,
                req.context.voice_enabled,
                None,
                req.context.station_name(),
            )
        else:
            result = await runtime.chat.simple_chat(
                message, history, req.context.language, req.session_id, req.enable_function_calling
            )
    except Exception as e:
        logging.exception("Chat request failed")
        raise ChatAPIError(500, str(e) or "Internal server error", headers)

    body = {
        "response": result["response"],
        "toolCalls": result.get("toolCalls"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(content=json.loads(json.dumps(body, default=str)), headers=headers)
