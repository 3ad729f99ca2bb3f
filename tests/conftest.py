import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from orchestrator.config import CONFIG
from orchestrator.llm import ChatTurn
from orchestrator.rate_limiter import BucketConfig, RateLimiter
from orchestrator.retry import RetryHandler
from orchestrator.state import build_runtime
from orchestrator.tool_executor import ToolExecutionResult


TRIPS = [
    {
        "id": "trip-1",
        "departure": "2024-01-16T09:02:00+01:00",
        "arrival": "2024-01-16T09:58:00+01:00",
        "duration": "PT56M",
        "transfers": 0,
        "price": 52,
        "legs": [
            {
                "start": {"place": {"id": "8503000", "name": "Zürich HB"}},
                "end": {"place": {"id": "8507000", "name": "Bern"}},
            }
        ],
    },
    {
        "id": "trip-2",
        "departure": "2024-01-16T09:32:00+01:00",
        "arrival": "2024-01-16T10:28:00+01:00",
        "duration": "PT56M",
        "transfers": 1,
        "legs": [],
    },
]

TOOL_DATA: Dict[str, Any] = {
    "findTrips": TRIPS,
    "getEcoComparison": {"trainCO2": 1.2, "carCO2": 18.5, "planeCO2": None, "savings": 17.3},
    "findPlaces": [{"name": "St. Moritz", "centroid": {"coordinates": [9.84, 46.49]}}],
    "getWeather": {"temperature": -3, "condition": "Snow", "locationName": "St. Moritz"},
    "getSnowConditions": {"locationName": "St. Moritz", "snowDepth": 85},
    "findStopPlacesByName": [{"id": "8503000", "name": "Zürich HB"}],
    "getPlaceEvents": {
        "departures": [
            {
                "journeyId": "j-1",
                "departureTime": "2024-01-16T09:02:00+01:00",
                "line": "IC 1",
                "destination": "Bern",
            },
            {
                "journeyId": "j-2",
                "departureTime": "2024-01-16T09:07:00+01:00",
                "line": "S 3",
                "destination": "Wetzikon",
            },
        ]
    },
    "getTrainFormation": {"formationShortString": "[1,1,2,2,2]"},
}


class ToolProxy:
    """Stands in for the MCP proxy: POST /tools/{name} returns canned JSON."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, failures: Optional[Dict[str, int]] = None):
        self.data = dict(TOOL_DATA if data is None else data)
        self.failures = failures or {}
        self.calls: List[Dict[str, Any]] = []

    def names(self) -> List[str]:
        return [call["name"] for call in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        params = json.loads(request.content or b"{}")
        self.calls.append({"name": name, "params": params})
        status = self.failures.get(name)
        if status:
            return httpx.Response(status, json={"error": f"{name} failed"})
        if name not in self.data:
            return httpx.Response(500, json={"error": f"Unknown tool {name}"})
        return httpx.Response(200, json=self.data[name])

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeTools:
    """In-process tool runner for plan tests; returns canned data without HTTP."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, failing: tuple = ()):
        self.data = dict(TOOL_DATA if data is None else data)
        self.failing = failing
        self.calls: List[tuple] = []

    async def execute_tool(self, tool_name: str, params: Dict[str, Any]) -> ToolExecutionResult:
        self.calls.append((tool_name, params))
        if tool_name in self.failing:
            return ToolExecutionResult(success=False, tool_name=tool_name, params=params, error="boom")
        return ToolExecutionResult(success=True, tool_name=tool_name, params=params, data=self.data.get(tool_name))


class FakeChat:
    def __init__(self, llm: "FakeLLM", system_prompt: str, history, with_tools: bool):
        self.llm = llm
        self.system_prompt = system_prompt
        self.history = list(history)
        self.with_tools = with_tools
        self.sent: List[str] = []

    async def send(self, message: str) -> ChatTurn:
        self.sent.append(message)
        if self.llm.turns:
            return self.llm.turns.pop(0)
        return ChatTurn(text=self.llm.reply)

    async def send_function_responses(self, responses) -> ChatTurn:
        self.llm.function_responses.append(list(responses))
        return ChatTurn(text=self.llm.follow_up)

    async def stream(self, message: str):
        self.sent.append(message)
        for turn in self.llm.stream_turns:
            yield turn


class FakeLLM:
    """Implements the gateway surface the orchestrator uses."""

    def __init__(
        self,
        reply: str = "Here is what I found.",
        json_reply: str = "{}",
        turns: Optional[List[ChatTurn]] = None,
        stream_turns: Optional[List[ChatTurn]] = None,
        stream_pieces: Optional[List[str]] = None,
        follow_up: str = "Done.",
        configured: bool = True,
    ):
        self.reply = reply
        self.json_reply = json_reply
        self.turns = list(turns or [])
        self.stream_turns = list(stream_turns or [ChatTurn(text="Hello "), ChatTurn(text="there.")])
        self.stream_pieces = list(stream_pieces or ["Here are ", "your options."])
        self.follow_up = follow_up
        self.configured = configured
        self.prompts: List[str] = []
        self.chats: List[FakeChat] = []
        self.function_responses: List[List[Any]] = []

    async def generate(self, prompt: str, json_mode: bool = False) -> str:
        self.prompts.append(prompt)
        return self.json_reply if json_mode else self.reply

    async def stream_text(self, prompt: str):
        self.prompts.append(prompt)
        for piece in self.stream_pieces:
            yield piece

    def start_chat(self, system_prompt: str, history=(), with_tools: bool = True) -> FakeChat:
        chat = FakeChat(self, system_prompt, history, with_tools)
        self.chats.append(chat)
        return chat


async def _no_sleep(_: float) -> None:
    return None


def fast_retry(**kwargs: Any) -> RetryHandler:
    return RetryHandler(sleep=_no_sleep, **kwargs)


@pytest.fixture
def proxy() -> ToolProxy:
    return ToolProxy()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def runtime(proxy, fake_llm):
    return build_runtime(proxy.client(), CONFIG, llm=fake_llm, retry=fast_retry())


@pytest.fixture
def api(runtime):
    from fastapi.testclient import TestClient

    from orchestrator.deps import get_runtime
    from orchestrator.main import app

    app.dependency_overrides[get_runtime] = lambda: runtime
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def tight_limiter(per_user: int = 1, global_: int = 100) -> RateLimiter:
    return RateLimiter(per_user=BucketConfig(per_user, 1, 60.0), global_=BucketConfig(global_, 10, 60.0))
