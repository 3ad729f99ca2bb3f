import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
import httpx
import uvicorn

from .config import CONFIG
from .errors import ChatAPIError, RateLimitExceeded, chat_api_error_handler, rate_limit_exceeded_handler
from .routers.llm import router as llm_router
from .state import build_runtime


# --- Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler()
    ]
)
# --------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    http_client = httpx.AsyncClient(timeout=CONFIG.http_timeout_sec)
    app.state.http_client = http_client
    app.state.runtime = build_runtime(http_client, CONFIG)
    try:
        yield
    finally:
        await http_client.aclose()


app = FastAPI(title="Swiss Travel Companion - Orchestrator", lifespan=lifespan)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(ChatAPIError, chat_api_error_handler)
app.add_middleware(GZipMiddleware, minimum_size=512)
app.include_router(llm_router, prefix="/api/llm")


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3002"))
    uvicorn.run(app, host="0.0.0.0", port=port)
