import os
from typing import Final


class _Config:
    def __init__(self) -> None:
        # Upstream MCP server
        self.mcp_server_url: str = os.getenv("MCP_SERVER_URL", "http://localhost:8000").rstrip("/")
        self.client_name: str = os.getenv("MCP_CLIENT_NAME", "swiss-travel-companion")
        self.client_version: str = os.getenv("MCP_CLIENT_VERSION", "1.0.0")

        # HTTP behavior
        self.user_agent: str = os.getenv("MCP_USER_AGENT", "SwissTravelCompanion-MCP-Proxy")
        try:
            self.http_timeout_sec: float = float(os.getenv("HTTP_TIMEOUT_SEC", "15"))
        except ValueError:
            self.http_timeout_sec = 15.0


CONFIG: Final[_Config] = _Config()
