import os
import logging

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
import uvicorn

from .config import CONFIG
from .connector import McpConnector
from .routers.tools import router as tools_router


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
    app.state.connector = McpConnector(
        CONFIG.client_name,
        CONFIG.client_version,
        CONFIG.user_agent,
        CONFIG.http_timeout_sec,
    )
    yield

app = FastAPI(title="Swiss Travel Companion - MCP Proxy", lifespan=lifespan)
app.add_middleware(GZipMiddleware, minimum_size=512)
app.include_router(tools_router, prefix="/tools")


@app.get("/")
async def root():
    return {"status": "ok"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3001"))
    uvicorn.run(app, host="0.0.0.0", port=port)
