"""Process-wide state, built once per app and shared through dependencies."""
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .chat import ChatService
from .config import CONFIG, _Config
from .context.sessions import SessionStore
from .llm import LLMGateway
from .rate_limiter import RateLimiter, rate_limiter_from_config
from .resolvers import ToolResolverRegistry
from .retry import RetryHandler, retry_handler_from_config
from .tool_executor import ToolExecutor


@dataclass
class Runtime:
    config: _Config
    rate_limiter: RateLimiter
    retry: RetryHandler
    sessions: SessionStore
    tools: ToolExecutor
    llm: Any
    chat: ChatService


def build_runtime(
    client: httpx.AsyncClient,
    cfg: _Config = CONFIG,
    llm: Optional[Any] = None,
    rate_limiter: Optional[RateLimiter] = None,
    retry: Optional[RetryHandler] = None,
) -> Runtime:
    llm = llm if llm is not None else LLMGateway(cfg.gemini_api_key, cfg.gemini_model)
    retry = retry or retry_handler_from_config(cfg)
    sessions = SessionStore()
    tools = ToolExecutor(
        client,
        retry,
        ToolResolverRegistry(),
        base_url=cfg.mcp_proxy_url,
        max_attempts=cfg.retry_max_attempts,
    )
    chat = ChatService(
        llm,
        tools,
        sessions,
        enable_orchestration=cfg.enable_orchestration,
        confidence_threshold=cfg.orchestration_confidence_threshold,
        use_llm_intents=cfg.llm_intent_extraction,
    )
    return Runtime(
        config=cfg,
        rate_limiter=rate_limiter or rate_limiter_from_config(cfg),
        retry=retry,
        sessions=sessions,
        tools=tools,
        llm=llm,
        chat=chat,
    )
