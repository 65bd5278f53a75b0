"""FastAPI application factory with middleware, routers, lifespan and pollers."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .api import api_router
from .chat.events import InMemoryEventPublisher
from .chat.routes import ws_router
from .config import settings, setup_logging
from .database.base import SessionLocal, get_db
from .errors import FoodSaveError
from .integrations.cache import NullCacheService, create_cache_service
from .mail.transport import NullEmailTransport, create_email_transport
from .rate_limit import limiter, rate_limit_exceeded
from .tasks.approval import ApprovalPoller
from .tasks.digest import EmailDigestPoller, build_ledgers
from .tasks.scheduler import PeriodicTask

logger = logging.getLogger(__name__)

_startup_time: float = 0.0


def _run_migrations() -> None:
    """Run Alembic migrations (upgrade head) on startup."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(Path(__file__).parent.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.effective_database_url)
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    global _startup_time
    _startup_time = time.time()
    setup_logging()

    if settings.run_migrations:
        _run_migrations()

    app.state.cache = create_cache_service()
    app.state.digest_poller = EmailDigestPoller(SessionLocal, create_email_transport(), build_ledgers())

    tasks: list[PeriodicTask] = []
    if settings.pollers_enabled:
        tasks = [
            PeriodicTask("approval-poller", settings.approval_poll_seconds, ApprovalPoller(SessionLocal).tick),
            PeriodicTask("digest-poller", settings.digest_poll_seconds, app.state.digest_poller.tick),
        ]
        for task in tasks:
            task.start()
    app.state.pollers = tasks

    yield

    for task in tasks:
        await task.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="FoodSave Hub",
        lifespan=lifespan,
    )

    # Usable before startup (tests drive the app without the lifespan)
    app.state.cache = NullCacheService()
    app.state.events = InMemoryEventPublisher()
    app.state.digest_poller = EmailDigestPoller(SessionLocal, NullEmailTransport(), build_ledgers())
    app.state.pollers = []

    # --- Exception handlers ---
    @app.exception_handler(FoodSaveError)
    async def foodsave_error_handler(request: Request, exc: FoodSaveError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s", exc.message, request.method, request.url.path)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse({"error": message}, status_code=400)

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    # --- Middleware stack (LIFO: last added = outermost) ---

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    if settings.trusted_hosts_list != ["*"]:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.trusted_hosts_list,
        )

    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response

    app.include_router(api_router)
    app.include_router(ws_router)

    # --- Health check ---
    @app.get("/health")
    def health(request: Request, db: Session = Depends(get_db)):
        db_status = "ok"
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            db_status = "unreachable"

        status = "ok" if db_status == "ok" else "degraded"
        uptime = round(time.time() - _startup_time, 1) if _startup_time else 0.0

        return {
            "status": status,
            "db": db_status,
            "pollers": {task.name: task.running for task in request.app.state.pollers},
            "uptime_seconds": uptime,
        }

    return app


app = create_app()
