"""
DocQA Backend Application

FastAPI application for question answering over an uploaded PDF.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docqa import __version__
from docqa.config import settings
from docqa.context import AppContext
from docqa.api.routes import (
    upload_router,
    query_router,
    health_router,
)

# Configure logging
# DEBUG mode: full details with timestamps and module names
# INFO mode: clean output for progress visibility
if settings.debug:
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_level = logging.DEBUG
else:
    log_format = "%(message)s"
    log_level = logging.INFO

logging.basicConfig(level=log_level, format=log_format)


class ThirdPartyNoiseFilter(logging.Filter):
    """
    Drops known repetitive DEBUG/INFO messages from HTTP and model
    libraries while letting their warnings and errors through.
    """

    NOISE_PATTERNS = [
        # httpx/httpcore connection pool messages
        "HTTP Request:",
        "connect_tcp.started",
        "connect_tcp.complete",
        "send_request_headers",
        "receive_response_headers",
        "receive_response_body",
        "close.started",
        "close.complete",
        # urllib3 pool messages
        "Starting new HTTP",
        "Resetting dropped connection",
        # LiteLLM per-call chatter
        "LiteLLM completion()",
        "Wrapper: Completed Call",
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True

        message = record.getMessage()
        return not any(pattern in message for pattern in self.NOISE_PATTERNS)


_noise_filter = ThirdPartyNoiseFilter()
for third_party_logger in ["httpx", "httpcore", "urllib3", "LiteLLM", "chromadb"]:
    logging.getLogger(third_party_logger).addFilter(_noise_filter)

logger = logging.getLogger(__name__)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the FastAPI application.

    When no context is given one is built from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting DocQA Backend...")
        app.state.context = context or AppContext.build(settings)
        await app.state.context.startup()

        yield

        logger.info("Shutting down DocQA Backend...")
        await app.state.context.shutdown()

    app = FastAPI(
        title="DocQA API",
        description="""
    Retrieval-Augmented Generation over a single uploaded PDF.

    ## Getting Started

    1. Upload a document via `/api/upload` (multipart field `pdf`)
    2. Ask questions via `/api/ask` with `{"question": "...", "debug": false}`
    """,
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})

    app.include_router(health_router)
    app.include_router(upload_router, prefix=settings.api_prefix)
    app.include_router(query_router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "DocQA API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "/health",
                "upload": f"{settings.api_prefix}/upload",
                "ask": f"{settings.api_prefix}/ask",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docqa.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.debug,
    )
