"""DormFix FastAPI application entry point.

Start with:
    uvicorn dormfix.api.main:app --reload --host 0.0.0.0 --port 8000

The language model is resolved from LLM_PROVIDER / LLM_MODEL / *_API_KEY env
vars. Without a key the no-op client is used and every triage turn takes the
escalation fallback, so the service still starts.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from dormfix.clients.llm import build_llm_client
from dormfix.config import load_notification_config, load_scheduling_config, load_triage_config
from dormfix.core.exceptions import DormFixError
from dormfix.core.logger import configure
from dormfix.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from dormfix.services import ConversationLocks, NotificationService
from dormfix.triage.generation import GenerationClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure()

    await ensure_database_exists()
    engine = build_engine()
    app.state.session_factory = build_session_factory(engine)
    await init_db()

    triage_config = load_triage_config()
    app.state.triage_config = triage_config
    app.state.scheduling_config = load_scheduling_config()

    llm_client = build_llm_client()
    app.state.generation = GenerationClient(
        llm_client,
        timeout=triage_config.generation_timeout,
        max_history_turns=triage_config.max_history_turns,
    )
    if getattr(llm_client, "provider", "") == "noop":
        logger.warning("API: no LLM configured, triage turns will escalate to staff")

    notifier = NotificationService(load_notification_config())
    app.state.notifier = notifier
    app.state.conversation_locks = ConversationLocks()
    logger.info("API: triage ready (notifications %s)", "on" if notifier.enabled else "off")

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await notifier.drain()
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="DormFix API",
    version="1.0.0",
    description="Student housing maintenance intake: conversational triage, cases and contractor scheduling.",
    lifespan=lifespan,
)

# Rate limiter, configurable via TRIAGE_RATE_LIMIT (default 30/minute)
_rate_limit = os.environ.get("TRIAGE_RATE_LIMIT", "30/minute")
limiter = Limiter(key_func=get_remote_address, default_limits=[_rate_limit])
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Optional API key authentication ──────────────────────────────
# When ADMIN_API_KEY is set every /api/v1/* request needs  X-Api-Key: <value>
_ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY", "").strip() or None


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if _ADMIN_API_KEY and request.url.path.startswith("/api/v1"):
        if request.headers.get("X-Api-Key") != _ADMIN_API_KEY:
            return JSONResponse(
                status_code=401,
                content={"detail": "Unauthorized, set X-Api-Key header"},
            )
    return await call_next(request)


@app.exception_handler(DormFixError)
async def dormfix_error_handler(request: Request, exc: DormFixError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("API: %s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_dict()})


# ── Routers ───────────────────────────────────────────────────────
from dormfix.api.routers import cases, scheduling, triage  # noqa: E402

app.include_router(triage.router, prefix="/api/v1")
app.include_router(cases.router, prefix="/api/v1")
app.include_router(scheduling.router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
