import os
from typing import Final


class _Config:
    def __init__(self) -> None:
        self.orchestrator_url: str = os.getenv("ORCHESTRATOR_URL", "http://localhost:3002").rstrip("/")
        try:
            self.stream_timeout_sec: float = float(os.getenv("STREAM_TIMEOUT_SEC", "30"))
        except ValueError:
            self.stream_timeout_sec = 30.0
        try:
            self.tool_timeout_sec: float = float(os.getenv("TOOL_TIMEOUT_SEC", "10"))
        except ValueError:
            self.tool_timeout_sec = 10.0
        try:
            self.chunk_batch_delay_sec: float = float(os.getenv("CHUNK_BATCH_DELAY_SEC", "0.05"))
        except ValueError:
            self.chunk_batch_delay_sec = 0.05


CONFIG: Final[_Config] = _Config()
