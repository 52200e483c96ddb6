"""FastAPI application entrypoint for the Greenhouse community portal."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from starlette.middleware.sessions import SessionMiddleware

from app.api.achievements import router as achievements_router
from app.api.games import router as games_router
from app.api.learn import router as learn_router
from app.api.posts import router as posts_router
from app.api.pots import router as pots_router
from app.api.xp import router as xp_router
from app.core.auth import SESSION_USER_KEY
from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.core.rate_limit import rate_limiter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    rate_limiter.start_sweeper(settings.rate_limit_sweep_seconds)
    logger.info("app.started")
    try:
        yield
    finally:
        rate_limiter.close()
        logger.info("app.stopped")


app = FastAPI(title="Greenhouse", lifespan=lifespan)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Bind request details to every log line emitted while handling it."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        method=request.method,
        path=request.url.path,
        user_id=request.session.get(SESSION_USER_KEY),
    )
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    return response


# Added last so it wraps the context middleware and the session is decoded first.
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

app.include_router(pots_router)
app.include_router(posts_router)
app.include_router(learn_router)
app.include_router(xp_router)
app.include_router(achievements_router)
app.include_router(games_router)


@app.get("/health")
def health() -> dict[str, bool]:
    """Basic liveness probe endpoint."""
    return {"ok": True}
