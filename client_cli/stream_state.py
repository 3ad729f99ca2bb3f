"""
Client side of the SSE protocol.

StreamState folds start/chunk/tool_call/tool_result/complete/error/done frames
into one StreamingMessage. The CLI reads frames synchronously, so the chunk
debounce and per-tool timeouts are deadlines checked against an injectable
clock whenever a frame arrives (or tick() is called).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import json
import logging
import time

import httpx

from .config import CONFIG

TOOL_TIMEOUT_MESSAGE = "Tool execution timed out"
TIMEOUT_MESSAGE = "Request took too long. Please try again."
NETWORK_MESSAGE = "Connection error. Please check your network and try again."
OFFLINE_MESSAGE = "No internet connection. Please check your network."
FALLBACK_CONTENT = "Sorry, I encountered an error while processing your request."


@dataclass
class StreamingToolCall:
    tool_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    status: str = "executing"  # executing | complete | error
    result: Any = None
    error: Optional[str] = None


@dataclass
class MessageError:
    type: str  # general | timeout | network
    message: str
    retryable: bool = True
    details: Optional[str] = None


@dataclass
class StreamingMessage:
    content: str = ""
    is_streaming: bool = True
    streaming_tool_calls: List[StreamingToolCall] = field(default_factory=list)
    tool_calls: Optional[List[Dict[str, Any]]] = None
    error: Optional[MessageError] = None
    session_id: Optional[str] = None


class StreamState:
    def __init__(
        self,
        chunk_delay: float = CONFIG.chunk_batch_delay_sec,
        tool_timeout: float = CONFIG.tool_timeout_sec,
        clock: Callable[[], float] = time.monotonic,
        on_flush: Optional[Callable[[str], None]] = None,
        on_tool: Optional[Callable[[StreamingToolCall], None]] = None,
    ) -> None:
        self.message = StreamingMessage()
        self.chunk_delay = chunk_delay
        self.tool_timeout = tool_timeout
        self._clock = clock
        self._on_flush = on_flush
        self._on_tool = on_tool
        self._buffer = ""
        self._last_chunk_at: Optional[float] = None
        self._tool_deadlines: Dict[str, float] = {}

    # --- timers ---

    def flush(self) -> None:
        if not self._buffer:
            return
        text, self._buffer = self._buffer, ""
        self._last_chunk_at = None
        self.message.content += text
        if self._on_flush:
            self._on_flush(text)

    def tick(self) -> None:
        now = self._clock()
        if self._last_chunk_at is not None and now - self._last_chunk_at >= self.chunk_delay:
            self.flush()
        for name, deadline in list(self._tool_deadlines.items()):
            if now >= deadline:
                del self._tool_deadlines[name]
                self._expire_tool(name)

    def _expire_tool(self, name: str) -> None:
        for call in self.message.streaming_tool_calls:
            if call.tool_name == name and call.status == "executing":
                call.status = "error"
                call.error = TOOL_TIMEOUT_MESSAGE
                self._notify(call)

    def _notify(self, call: StreamingToolCall) -> None:
        if self._on_tool:
            self._on_tool(call)

    # --- frames ---

    def handle_event(self, event: Dict[str, Any]) -> None:
        self.tick()
        kind = event.get("type")
        data = event.get("data") or {}

        if kind == "start":
            self.message.session_id = data.get("sessionId")
        elif kind == "chunk":
            self._buffer += data.get("text", "")
            self._last_chunk_at = self._clock()
        elif kind == "tool_call":
            call = StreamingToolCall(tool_name=data.get("toolName", ""), params=data.get("params") or {})
            self.message.streaming_tool_calls.append(call)
            self._tool_deadlines[call.tool_name] = self._clock() + self.tool_timeout
            self._notify(call)
        elif kind == "tool_result":
            name = data.get("toolName", "")
            self._tool_deadlines.pop(name, None)
            success = bool(data.get("success"))
            for call in self.message.streaming_tool_calls:
                if call.tool_name == name:
                    call.status = "complete" if success else "error"
                    call.result = data.get("result")
                    call.error = None if success else "Tool execution failed"
                    self._notify(call)
        elif kind == "complete":
            self.flush()
            completed = [
                {"toolName": c.tool_name, "params": c.params, "result": c.result}
                for c in self.message.streaming_tool_calls
                if c.status == "complete"
            ]
            self.message.tool_calls = completed or None
            self.message.is_streaming = False
        elif kind == "error":
            self.flush()
            self.message.is_streaming = False
            self.message.error = MessageError(
                type="general",
                message=data.get("error") or "An error occurred while processing your request",
            )
        elif kind == "done":
            pass
        else:
            logging.warning("Unknown stream event type: %s", kind)

    def fail(self, exc: Exception) -> None:
        """Record a transport failure that ended the stream."""
        self.flush()
        self._tool_deadlines.clear()
        timed_out = isinstance(exc, httpx.TimeoutException)
        self.message.error = MessageError(
            type="timeout" if timed_out else "network",
            message=TIMEOUT_MESSAGE if timed_out else NETWORK_MESSAGE,
            details=str(exc),
        )
        self.message.is_streaming = False
        if not self.message.content:
            self.message.content = FALLBACK_CONTENT

    def finish(self) -> StreamingMessage:
        self.flush()
        self._tool_deadlines.clear()
        return self.message


class ServerError(Exception):
    pass


def offline_message() -> StreamingMessage:
    return StreamingMessage(
        content=OFFLINE_MESSAGE,
        is_streaming=False,
        error=MessageError(type="network", message="No internet connection"),
    )


def read_sse(lines, state: StreamState) -> None:
    for raw_line in lines:
        line = raw_line.strip()
        if not line.startswith("data:"):
            continue
        try:
            event = json.loads(line[len("data:"):].strip())
        except json.JSONDecodeError:
            logging.error("Failed to parse SSE event: %s", line)
            continue
        state.handle_event(event)


def stream_message(
    client: httpx.Client,
    url: str,
    payload: Dict[str, Any],
    state: StreamState,
    stream_timeout: float = CONFIG.stream_timeout_sec,
    online: Callable[[], bool] = lambda: True,
) -> StreamingMessage:
    """POST payload to the stream endpoint and fold the frames into state.message."""
    if not online():
        return offline_message()
    try:
        with client.stream(
            "POST",
            url,
            json=payload,
            headers={"Accept": "text/event-stream", "Content-Type": "application/json"},
            timeout=stream_timeout,
        ) as resp:
            if resp.status_code >= 400:
                resp.read()
                try:
                    body = resp.json()
                except ValueError:
                    body = None
                error = body.get("error") if isinstance(body, dict) else None
                raise ServerError(error or f"Server error: {resp.status_code}")
            read_sse(resp.iter_lines(), state)
    except (httpx.HTTPError, ServerError) as e:
        logging.error("Stream error: %s", e)
        state.fail(e)
    return state.finish()
