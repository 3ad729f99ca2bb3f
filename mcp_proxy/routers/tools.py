from typing import Any, Dict, Optional
import logging
import time
import json
from datetime import datetime

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from mcp.types import ErrorData, TextContent

from ..deps import get_connector
from ..config import CONFIG
from ..connector import McpConnector, ToolOutcome


router = APIRouter()


def _log(fn: str, tool: str, started: float, ok: bool) -> None:
    log_data = {
        "ts": datetime.utcnow().isoformat(),
        "tool": f"mcp-{tool}",
        "fn": fn,
        "latency_ms": f"{(time.monotonic() - started) * 1000:.2f}",
        "ok": ok,
    }
    logging.info(json.dumps(log_data))


def unpack_result(outcome: ToolOutcome) -> JSONResponse:
    if isinstance(outcome, ErrorData):
        return JSONResponse(
            {"error": outcome.message or "Tool execution failed", "code": outcome.code},
            status_code=500,
        )

    content = outcome.content
    if content and isinstance(content[0], TextContent) and content[0].text:
        text = content[0].text
        try:
            return JSONResponse(json.loads(text))
        except ValueError:
            return JSONResponse({"text": text})

    if outcome.structuredContent is not None:
        return JSONResponse(outcome.structuredContent)
    return JSONResponse(outcome.model_dump(mode="json", exclude_none=True))


@router.post("/{name}")
async def execute_tool(
    name: str,
    arguments: Dict[str, Any] = Body(default={}),
    server: Optional[str] = Query(default=None),
    connector: McpConnector = Depends(get_connector),
) -> JSONResponse:
    server_url = (server or CONFIG.mcp_server_url).rstrip("/")
    started = time.monotonic()
    try:
        outcome = await connector.call_tool(server_url, name, arguments)
    except Exception as e:
        _log("tools/call", name, started, False)
        logging.exception("Error executing tool %s", name)
        return JSONResponse({"error": f"Failed to execute tool: {e}"}, status_code=500)

    ok = not isinstance(outcome, ErrorData) and not outcome.isError
    _log("tools/call", name, started, ok)
    return unpack_result(outcome)
