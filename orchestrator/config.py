import os
from typing import Final


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class _Config:
    def __init__(self) -> None:
        # Language model
        self.gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
        self.llm_intent_extraction: bool = _bool_env("LLM_INTENT_EXTRACTION", False)

        # Tool proxy
        self.mcp_proxy_url: str = os.getenv("MCP_PROXY_URL", "http://localhost:3001").rstrip("/")
        self.http_timeout_sec: float = _float_env("HTTP_TIMEOUT_SEC", 15.0)
        self.user_agent: str = os.getenv("ORCHESTRATOR_USER_AGENT", "SwissTravelCompanion-Orchestrator")

        # Rate limiting (token buckets)
        self.rate_limit_per_user_capacity: int = _int_env("RATE_LIMIT_PER_USER_CAPACITY", 10)
        self.rate_limit_per_user_refill_rate: int = _int_env("RATE_LIMIT_PER_USER_REFILL_RATE", 1)
        self.rate_limit_global_capacity: int = _int_env("RATE_LIMIT_GLOBAL_CAPACITY", 100)
        self.rate_limit_global_refill_rate: int = _int_env("RATE_LIMIT_GLOBAL_REFILL_RATE", 10)
        self.rate_limit_refill_interval_sec: float = _float_env("RATE_LIMIT_REFILL_INTERVAL_SEC", 60.0)

        # Retry / circuit breaker
        self.retry_max_attempts: int = _int_env("RETRY_MAX_ATTEMPTS", 3)
        self.retry_initial_delay_ms: int = _int_env("RETRY_INITIAL_DELAY", 1000)
        self.retry_max_delay_ms: int = _int_env("RETRY_MAX_DELAY", 10000)
        self.circuit_failure_threshold: int = _int_env("CIRCUIT_FAILURE_THRESHOLD", 5)
        self.circuit_reset_timeout_sec: float = _float_env("CIRCUIT_RESET_TIMEOUT_SEC", 60.0)

        # Orchestration
        self.enable_orchestration: bool = _bool_env("ENABLE_ORCHESTRATION", True)
        self.orchestration_confidence_threshold: float = _float_env("ORCHESTRATION_CONFIDENCE_THRESHOLD", 0.7)


CONFIG: Final[_Config] = _Config()
