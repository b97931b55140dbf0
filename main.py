import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.comments.router import router as comments_router
from apps.issues.router import router as issues_router
from apps.lookups.router import router as lookups_router
from apps.users.router import router as auth_router, users_router
from common.responses import error_response
from models.base import Base, engine, SessionLocal
from models.seed import seed_admin_user, seed_reference_data
from settings.config import get_settings
from utils.logging import setup_logging

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "form", "header", "cookie"}


def _field_name(loc) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Collect every field error into one 400 response.
    """
    details = {}
    for err in exc.errors():
        field = _field_name(err.get("loc", ()))
        details.setdefault(field, err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response("Validation failed", details),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("An unexpected internal server error occurred."),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables in dev when using the async engine. In prod, use Alembic migrations.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Seed lookups and the bootstrap admin if not present
    async with SessionLocal() as db:
        await seed_reference_data(db)
        await seed_admin_user(db)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """
    Application factory to build a FastAPI app with all middlewares and routers.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Authorization"],
    )

    # Security headers middleware (helmet-like)
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        return response

    # Optional SlowAPI rate limiter
    if settings.ENABLE_RATE_LIMITER:
        # Build a default limit string from settings, using common time units
        req = settings.RATE_LIMIT_REQUESTS
        win = settings.RATE_LIMIT_WINDOW_SECONDS
        if win == 1:
            default_limit = f"{req}/second"
        elif win == 60:
            default_limit = f"{req}/minute"
        elif win == 3600:
            default_limit = f"{req}/hour"
        elif win == 86400:
            default_limit = f"{req}/day"
        else:
            default_limit = f"{req} per {win} seconds"

        limiter = Limiter(
            key_func=get_remote_address,
            default_limits=[default_limit],
            storage_uri=settings.RATE_LIMIT_STORAGE_URI or None,
        )
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
        app.add_middleware(SlowAPIMiddleware)

    # Error envelope
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(lookups_router)
    app.include_router(issues_router)
    app.include_router(comments_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
