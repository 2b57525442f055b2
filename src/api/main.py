"""FastAPI application for ReplyAgent API.

Provides the main application instance with routers and exception
handlers configured.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("src").setLevel(logging.INFO)
from fastapi.responses import JSONResponse

from src.api.routes import replies
from src.api.schemas import HealthResponse
from src.errors import ConfigurationError, ReplyAgentError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: create tables on startup, drop cached state on shutdown."""
    from src.cli.config import load_config
    from src.db.connection import init_db, session_factory_for

    # --- Startup ---
    config = load_config()
    logging.getLogger("src").setLevel(config.server.log_level.upper())
    session_factory = session_factory_for(config.database.url)
    try:
        init_db(bind=session_factory.kw["bind"])
    except Exception as e:
        logger.error("Database initialization failed (non-blocking): %s", e)

    yield

    # --- Shutdown ---
    replies.reset_orchestrator()


app = FastAPI(
    title="ReplyAgent API",
    description="Automatic, persona-driven replies for inbound WhatsApp messages",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ReplyAgentError)
async def replyagent_error_handler(
    request: Request, exc: ReplyAgentError
) -> JSONResponse:
    """Render coded errors raised while wiring a request.

    The orchestrator turns pipeline failures into results, so what reaches
    here is configuration loaded by the ``get_orchestrator`` dependency.
    """
    status_code = 503 if isinstance(exc, ConfigurationError) else 500
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": exc.code,
            "message": exc.message,
            "remediation": exc.remediation,
            "details": exc.details if exc.details else None,
        },
    )


# Include routers
app.include_router(replies.router, prefix="/api/v1")


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness probe.

    Returns:
        ``{"status": "ok"}`` while the process is serving.
    """
    return HealthResponse(status="ok")


@app.get("/api")
def api_root() -> dict:
    """API root with links to docs.

    Returns:
        Dictionary with API info and links.
    """
    return {
        "name": "ReplyAgent API",
        "version": "0.1.0",
        "docs": "/docs",
        "redoc": "/redoc",
    }
