"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.api import auth
from marketplace.api.rate_limit import limiter, rate_limit_exceeded_handler
from marketplace.config import get_settings
from marketplace.logging_config import setup_logging
from marketplace.services.email_service import build_email_dispatcher
from marketplace.services.errors import AuthError, ConfigurationError, ErrorKind

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    setup_logging(settings.log_level)
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET is not set; logins will fail with a configuration error")
    app.state.email_dispatcher = build_email_dispatcher(settings)
    yield
    app.state.email_dispatcher.close()


app = FastAPI(
    title="Marketplace API",
    description="Accounts, email verification and password reset for the marketplace",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, code: str, message: str, details: list[str] | None = None):
    error: dict = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    """Render workflow failures in the error envelope."""
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as validation errors."""
    details = [
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorKind.VALIDATION_ERROR.value,
        "Invalid request data",
        details,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap routing errors (404, 405) in the error envelope."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return _error_response(
            exc.status_code,
            ErrorKind.NOT_FOUND.value,
            "The requested resource was not found",
        )
    return _error_response(exc.status_code, ErrorKind.HTTP_ERROR.value, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures and return an opaque 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorKind.INTERNAL_ERROR.value,
        "An unexpected error occurred",
    )


# Register routers
app.include_router(auth.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
