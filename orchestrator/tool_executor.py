import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from .config import CONFIG
from .resolvers import ToolResolverRegistry
from .retry import RemoteCallError, RetryHandler


@dataclass
class ToolExecutionResult:
    success: bool
    tool_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "toolName": self.tool_name,
            "params": self.params,
        }


def unwrap_envelope(payload: Any) -> Any:
    """MCP tools wrap their JSON in content[0].text; plain JSON passes through."""
    if isinstance(payload, dict):
        content = payload.get("content")
        if isinstance(content, list) and content and isinstance(content[0], dict) and content[0].get("text"):
            text = content[0]["text"]
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return {"text": text}
    return payload


class ToolExecutor:
    def __init__(
        self,
        client: httpx.AsyncClient,
        retry: RetryHandler,
        registry: Optional[ToolResolverRegistry] = None,
        base_url: Optional[str] = None,
        max_attempts: int = 3,
    ) -> None:
        self.client = client
        self.retry = retry
        self.registry = registry or ToolResolverRegistry()
        self.base_url = (base_url or CONFIG.mcp_proxy_url).rstrip("/")
        self.max_attempts = max_attempts

    async def _post(self, tool_name: str, params: Dict[str, Any]) -> Any:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": CONFIG.user_agent,
        }
        resp = await self.client.post(f"{self.base_url}/tools/{tool_name}", json=params, headers=headers)
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("error")
            except (ValueError, AttributeError):
                detail = resp.text or None
            raise RemoteCallError(
                detail or f"Tool execution failed: {resp.reason_phrase}",
                status=resp.status_code,
            )
        return resp.json()

    async def execute_tool(self, tool_name: str, params: Dict[str, Any]) -> ToolExecutionResult:
        params = dict(params or {})
        try:
            resolved = await self.registry.resolve(tool_name, params, self.execute_tool)
            resolved = dict(resolved)

            if tool_name == "findTrips":
                limit = resolved.get("limit")
                is_comparison = isinstance(limit, (int, float)) and limit > 3
                resolved["responseMode"] = "standard" if is_comparison else "detailed"
                if not limit:
                    resolved["limit"] = 3

            result = await self.retry.with_retry(
                lambda: self._post(tool_name, resolved),
                f"mcp-tool-{tool_name}",
                max_attempts=self.max_attempts,
            )
            if not result.success:
                return ToolExecutionResult(
                    success=False,
                    tool_name=tool_name,
                    params=params,
                    error=result.error or "Tool execution failed after retries",
                )
            return ToolExecutionResult(
                success=True,
                tool_name=tool_name,
                params=resolved,
                data=unwrap_envelope(result.data),
            )
        except Exception as e:
            logging.exception("Tool execution error for %s", tool_name)
            return ToolExecutionResult(success=False, tool_name=tool_name, params=params, error=str(e))

    async def execute_tools(self, calls: Iterable[Tuple[str, Dict[str, Any]]]) -> List[ToolExecutionResult]:
        return list(await asyncio.gather(*(self.execute_tool(name, params) for name, params in calls)))
