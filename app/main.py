from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import get_db
from app.core.config import settings
from app.core.logging import setup_logging
from app.routers import habits as habits_router
from app.routers import logs as logs_router
from app.routers import progress as progress_router
from app.services.sessions import ConversationSessionStore
from app.core.errors import (
    HabitEngineException,
    habit_engine_exception_handler,
    validation_exception_handler,
    store_unavailable_handler,
    unhandled_exception_handler,
)

logger = setup_logging()

app = FastAPI(
    title="Habit Streak Engine API",
    description=(
        "**Habit completion & streak engine**\n\n"
        "Records one log per habit per calendar day, keeps each habit's current "
        "streak, best streak and total completions in step with its log history, "
        "and reports today / weekly / rolling progress.\n\n"
        "Every request carries the caller's owner id in `X-Owner-Id`.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Multi-step front ends keep per-conversation state here.
app.state.sessions = ConversationSessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(HabitEngineException, habit_engine_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(OperationalError, store_unavailable_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(habits_router.router)
app.include_router(logs_router.router)
app.include_router(progress_router.router)

logger.info("habit engine started (env=%s)", settings.APP_ENV)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except OperationalError:
        logger.warning("health check: database unreachable")
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
