"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI

from app.api.v1.router import router as api_v1_router
from app.config import settings
from app.logging_config import configure_logging
from app.middleware import RequestContextMiddleware


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Configure application resources on startup."""
    configure_logging(log_level=settings.log_level)
    yield


app = FastAPI(
    title="SihaCare Custody Ledger API",
    description="Medical supply custody chain: batches, dispatches, receipts and administration",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Attach request context middleware (must be added before routes)
app.add_middleware(RequestContextMiddleware)

app.include_router(api_v1_router)


@app.get("/health", tags=["health"])
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Serve the API with uvicorn using the configured host and workers."""
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        workers=None if settings.api_reload else settings.api_workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
