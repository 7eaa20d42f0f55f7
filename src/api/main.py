import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from botocore.exceptions import BotoCoreError
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.deps import get_mailer, get_queue, get_rules, get_settings, get_store
from src.app_shell.config import validate_ops_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = get_rules()
    except (FileNotFoundError, ValueError) as e:
        print(f"CRITICAL: Rules load failed: {e}", file=sys.stderr)
        sys.exit(1)

    validate_ops_rules(rules)

    # Process-wide clients are built once, before the first request
    try:
        get_store()
        get_queue()
        get_mailer()
    except (BotoCoreError, ValueError) as e:
        print(f"CRITICAL: Client setup failed: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info(
        "Rules loaded from %s (storage=%s, queue=%s)",
        settings.rules_path,
        rules.storage.backend,
        rules.queue.backend,
    )

    yield


app = FastAPI(
    title="Newsletter Service",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import newsletter  # noqa: E402

app.include_router(newsletter.router, prefix="", tags=["Newsletter"])


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or missing request bodies use the shared envelope."""
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Invalid JSON format"},
    )


# CORS (the public signup form may be hosted anywhere)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "newsletter"}
