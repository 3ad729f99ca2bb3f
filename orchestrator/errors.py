from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from .rate_limiter import RateLimitResult


class RateLimitExceeded(Exception):
    def __init__(self, result: RateLimitResult, headers: Dict[str, str]) -> None:
        super().__init__("Too many requests")
        self.result = result
        self.headers = headers


class ChatAPIError(Exception):
    """Renders as {"error": message} with the given status."""

    def __init__(self, status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.headers = headers or {}


async def rate_limit_exceeded_handler(_: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": f"Rate limit exceeded. Please try again in {exc.result.retry_after} seconds.",
            "retryAfter": exc.result.retry_after,
            "resetAt": exc.result.reset_at,
        },
        headers=exc.headers,
    )


async def chat_api_error_handler(_: Request, exc: ChatAPIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=exc.headers)
