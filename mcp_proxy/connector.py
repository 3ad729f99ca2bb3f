from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Callable, Dict, Union

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from mcp.types import CallToolResult, ErrorData, Implementation


ToolOutcome = Union[CallToolResult, ErrorData]


class McpConnector:
    """Opens an MCP client session against a tool server and runs one tool call in it."""

    def __init__(
        self,
        client_name: str,
        client_version: str,
        user_agent: str,
        timeout_sec: float,
        transport: Callable[..., Any] = streamablehttp_client,
        session_factory: Callable[..., Any] = ClientSession,
    ) -> None:
        self.client_info = Implementation(name=client_name, version=client_version)
        self.user_agent = user_agent
        self.timeout = timedelta(seconds=timeout_sec)
        self._transport = transport
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self, server_url: str) -> AsyncIterator[ClientSession]:
        async with self._transport(
            f"{server_url}/mcp/",
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        ) as (read, write, _):
            async with self._session_factory(read, write, client_info=self.client_info) as session:
                await session.initialize()
                yield session

    async def call_tool(self, server_url: str, name: str, arguments: Dict[str, Any]) -> ToolOutcome:
        """JSON-RPC errors come back as ErrorData; transport failures raise."""
        async with self.session(server_url) as session:
            try:
                return await session.call_tool(name, arguments)
            except McpError as e:
                return e.error
