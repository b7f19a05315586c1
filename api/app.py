"""FastAPI application factory and configuration.

Builds every credential-core component from one ``Settings`` instance and
wires them onto ``app.state``; the lifespan connects the store and runs the
cleanup scheduler.
"""

import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from auth.cleanup import CleanupScheduler
from auth.credentials import CredentialStore
from auth.database import AuthDatabase
from auth.email_service import EmailService
from auth.errors import AuthError, RateLimited
from auth.middleware import get_current_user
from auth.models import SessionClaims
from auth.otp import OTPManager
from auth.password_reset import PasswordResetManager
from auth.rate_limit import SlidingWindowLimiter
from auth.registration import RegistrationFlow
from auth.tokens import SessionTokenIssuer
from config.settings import Settings, get_settings

from .admin_routes import router as admin_router
from .auth_routes import router as auth_router

logger = logging.getLogger(__name__)

HTTP_ERROR_TYPES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    503: "service_unavailable",
}


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for log correlation."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def build_components(app: FastAPI, settings: Settings, db: AuthDatabase) -> None:
    """Construct the core components and store them in app state."""
    credentials = CredentialStore(
        db,
        bcrypt_rounds=settings.bcrypt_rounds,
        require_verified_login=settings.require_verified_login,
    )
    otp = OTPManager(db, expiry_minutes=settings.otp_expiry_minutes)
    password_resets = PasswordResetManager(
        db,
        credentials,
        expiry_minutes=settings.reset_token_expiry_minutes,
        retention_hours=settings.reset_token_retention_hours,
    )

    app.state.settings = settings
    app.state.db = db
    app.state.credentials = credentials
    app.state.otp = otp
    app.state.registration = RegistrationFlow(credentials, otp)
    app.state.password_resets = password_resets
    app.state.token_issuer = SessionTokenIssuer(
        settings.resolve_jwt_secret(),
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expires_minutes,
    )
    app.state.email_service = EmailService.from_settings(settings)
    app.state.rate_limiter = SlidingWindowLimiter() if settings.rate_limit_enabled else None
    app.state.cleanup = CleanupScheduler(
        otp,
        password_resets,
        otp_interval_seconds=settings.otp_cleanup_interval_seconds,
        reset_interval_seconds=settings.reset_cleanup_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Auth Server...")
    db: AuthDatabase = app.state.db

    if not app.state.db_ready:
        try:
            await db.connect()
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    if app.state.email_service.is_configured:
        logger.info("Email service configured with SMTP")
    else:
        logger.info("Email service using console fallback")

    app.state.cleanup.start()

    yield

    # Cleanup
    await app.state.cleanup.stop()
    if not app.state.db_ready:
        await db.close()
    logger.info("Auth server shutting down...")


def _error_response(
    request: Request, status_code: int, body: dict, exc: Exception, headers=None
) -> JSONResponse:
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.is_development:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        """Turn core errors into the structured failure envelope."""
        if exc.status_code >= 500:
            logger.error(f"{exc.error_type}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.error_type}")
        headers = None
        if isinstance(exc, RateLimited):
            headers = {"Retry-After": str(exc.retry_after)}
        return _error_response(request, exc.status_code, exc.to_response(), exc, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ())[1:])
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
        body = {"success": False, "error": "validation_error", "message": message}
        return _error_response(request, 400, body, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        body = {
            "success": False,
            "error": HTTP_ERROR_TYPES.get(exc.status_code, "http_error"),
            "message": exc.detail if isinstance(exc.detail, str) else "Request failed",
        }
        return _error_response(request, exc.status_code, body, exc, getattr(exc, "headers", None))

    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
        body = {
            "success": False,
            "error": "store_unavailable",
            "message": "Service temporarily unavailable",
        }
        return _error_response(request, 500, body, exc)

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.error(f"General Error: {exc}")
        logger.error(traceback.format_exc())
        body = {
            "success": False,
            "error": "internal_error",
            "message": "Internal server error",
        }
        return _error_response(request, 500, body, exc)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[AuthDatabase] = None,
) -> FastAPI:
    """Create the auth server application.

    Pass ``database`` to reuse an already-connected store; the lifespan will
    then neither connect nor close it.
    """
    settings = settings or get_settings()
    app = FastAPI(
        title="Credential Core Auth Server",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.db_ready = database is not None
    build_components(app, settings, database or AuthDatabase.from_settings(settings))

    # Add request ID middleware for log correlation
    app.add_middleware(RequestIDMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = (time.time() - start_time) * 1000
        client = request.client.host if request.client else "unknown"
        logger.info(
            f"[{getattr(request.state, 'request_id', '-')}] {request.method} "
            f"{request.url.path} {response.status_code} {duration:.0f}ms from {client}"
        )
        return response

    register_exception_handlers(app)

    # Register routes
    app.include_router(auth_router)
    app.include_router(admin_router)

    # Health check
    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/")
    async def root(claims: Optional[SessionClaims] = Depends(get_current_user)):
        return {
            "service": "credential-core-auth",
            "status": "ok",
            "userId": claims.user_id if claims else None,
        }

    return app
