import logging
import traceback
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from streamertrack.api.deps import limiter
from streamertrack.api.routes import router
from streamertrack.config import settings
from streamertrack.database import engine, init_db
from streamertrack.errors import ConflictError, StreamerTrackError
from streamertrack.modules.backup import BackupScheduler
from streamertrack.schemas.error import error_content
from streamertrack.utils.sessions import SessionStore, load_users

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, load the user table and start the backup timer."""
    init_db()
    users = load_users(settings.AUTH_USERS)
    if not users:
        logger.warning("AUTH_USERS is empty: no one can log in")
    app.state.sessions = SessionStore(users)

    scheduler = None
    if settings.BACKUP_ENABLED:
        scheduler = BackupScheduler(
            engine, Path(settings.BACKUP_DIR), settings.BACKUP_INTERVAL_HOURS, settings.MAX_BACKUPS
        )
        scheduler.start()
    app.state.backup_scheduler = scheduler

    yield

    if scheduler is not None:
        scheduler.stop()
    app.state.sessions.clear()


app = FastAPI(
    title="StreamerTrack",
    description="Cleaning coverage tracking for marine seismic streamers.",
    version=VERSION,
    lifespan=lifespan,
)

cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(router, prefix="/api")


# ── Structured error handlers ─────────────────────────────────────────────────

@app.exception_handler(StreamerTrackError)
async def domain_error_handler(request: Request, exc: StreamerTrackError):
    extra = exc.details if isinstance(exc, ConflictError) else {}
    detail = exc.message
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        detail = "An unexpected error occurred."
    content = error_content(exc.label, detail, **extra)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    return JSONResponse(status_code=409, content=error_content("Conflict", str(exc.orig) if exc.orig else str(exc)))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content=error_content("Internal server error", "An unexpected error occurred."))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content=error_content("Validation error", str(exc)))


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s:\n%s", request.method, request.url.path, traceback.format_exc())
    return JSONResponse(status_code=500, content=error_content("Internal server error", "An unexpected error occurred."))


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "version": VERSION}
