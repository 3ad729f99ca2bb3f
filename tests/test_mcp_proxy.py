import asyncio
import json
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from mcp.shared.exceptions import McpError
from mcp.types import CallToolResult, ErrorData, TextContent

from mcp_proxy.config import CONFIG
from mcp_proxy.connector import McpConnector
from mcp_proxy.deps import get_connector
from mcp_proxy.main import app


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


class FakeConnector:
    """Echoes the tool name and arguments back as JSON text content."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.outcome: Optional[Any] = None
        self.failure: Optional[Exception] = None

    async def call_tool(self, server_url: str, name: str, arguments: Dict[str, Any]):
        self.calls.append((server_url, name, arguments))
        if self.failure is not None:
            raise self.failure
        if self.outcome is not None:
            return self.outcome
        return text_result(json.dumps({"tool": name, "arguments": arguments}))


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def client(connector):
    app.dependency_overrides[get_connector] = lambda: connector
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json() == {"status": "ok"}


def test_tool_call_unpacks_json_text(client, connector):
    resp = client.post("/tools/getWeather", json={"locationName": "Bern"})
    assert resp.status_code == 200
    assert resp.json() == {"tool": "getWeather", "arguments": {"locationName": "Bern"}}
    assert connector.calls == [(CONFIG.mcp_server_url, "getWeather", {"locationName": "Bern"})]


def test_empty_body_sends_no_arguments(client, connector):
    client.post("/tools/findTrips")
    assert connector.calls[0][2] == {}


def test_plain_text_content(client, connector):
    connector.outcome = text_result("No trains found")
    assert client.post("/tools/findTrips", json={}).json() == {"text": "No trains found"}


def test_structured_content_passes_through(client, connector):
    connector.outcome = CallToolResult(content=[], structuredContent={"items": []})
    assert client.post("/tools/findTrips", json={}).json() == {"items": []}


def test_json_rpc_error(client, connector):
    connector.outcome = ErrorData(code=-32000, message="Upstream timetable unavailable")
    resp = client.post("/tools/findTrips", json={})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Upstream timetable unavailable", "code": -32000}


def test_transport_error(client, connector):
    connector.failure = httpx.ConnectError("connection refused")
    resp = client.post("/tools/findTrips", json={})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to execute tool: connection refused"}


def test_server_override(client, connector):
    resp = client.post("/tools/getWeather?server=http://mcp.example.test:9000/", json={})
    assert resp.status_code == 200
    assert connector.calls[0][0] == "http://mcp.example.test:9000"


# --- connector ---

class FakeSession:
    def __init__(self, read, write, client_info=None):
        self.streams = (read, write)
        self.client_info = client_info
        self.events: List[Any] = []
        self.error: Optional[ErrorData] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def initialize(self):
        self.events.append("initialize")

    async def call_tool(self, name, arguments):
        self.events.append(("call_tool", name, arguments))
        if self.error is not None:
            raise McpError(self.error)
        return text_result("{}")


def make_connector(error: Optional[ErrorData] = None):
    opened: List[Dict[str, Any]] = []
    sessions: List[FakeSession] = []

    @asynccontextmanager
    async def transport(url, headers=None, timeout=None):
        opened.append({"url": url, "headers": headers, "timeout": timeout})
        yield "read-stream", "write-stream", lambda: None

    def session_factory(read, write, client_info=None):
        session = FakeSession(read, write, client_info)
        session.error = error
        sessions.append(session)
        return session

    connector = McpConnector("swiss-travel-companion", "1.0.0", "Test-Agent", 15.0, transport, session_factory)
    return connector, opened, sessions


def test_connector_initializes_before_calling():
    connector, opened, sessions = make_connector()
    outcome = asyncio.run(connector.call_tool("http://mcp:8000", "getWeather", {"locationName": "Bern"}))

    assert outcome.content[0].text == "{}"
    assert opened == [{
        "url": "http://mcp:8000/mcp/",
        "headers": {"User-Agent": "Test-Agent"},
        "timeout": timedelta(seconds=15),
    }]
    session = sessions[0]
    assert session.streams == ("read-stream", "write-stream")
    assert session.client_info.name == "swiss-travel-companion"
    assert session.events == ["initialize", ("call_tool", "getWeather", {"locationName": "Bern"})]


def test_connector_returns_json_rpc_errors():
    connector, _, _ = make_connector(error=ErrorData(code=-32602, message="Unknown tool"))
    outcome = asyncio.run(connector.call_tool("http://mcp:8000", "teleport", {}))
    assert isinstance(outcome, ErrorData)
    assert outcome.code == -32602


def test_connector_opens_a_session_per_call():
    connector, opened, sessions = make_connector()

    async def run():
        await connector.call_tool("http://mcp:8000", "findTrips", {})
        await connector.call_tool("http://mcp:8000", "getWeather", {})

    asyncio.run(run())
    assert len(opened) == 2
    assert [s.events[0] for s in sessions] == ["initialize", "initialize"]
