"""
FastAPI application entry point.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.routes import auth, gmail, health
from app.utils.cookies import set_session_cookie
from app.utils.errors import AppError, ErrorKind, provider_status
from app.utils.logger import get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="SwipeMail",
    description="Inbox triage proxy for Gmail: read, archive and star without exposing Google tokens",
    version="1.0.0",
)

# Get settings
settings = get_settings()

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(gmail.router, prefix="/api/gmail", tags=["Gmail"])


def error_response(request: Request, status_code: int, message: str, kind: ErrorKind) -> JSONResponse:
    """
    Build the JSON error body.

    A session refreshed earlier in the request is still written back,
    otherwise the browser would keep the stale access token.
    """
    response = JSONResponse(
        status_code=status_code,
        content={"error": message, "code": kind.value},
    )
    refreshed = getattr(request.state, "refreshed_session_cookie", None)
    if refreshed:
        set_session_cookie(response, refreshed)
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map application errors to responses by kind."""
    if exc.kind in (ErrorKind.AUTH_REQUIRED, ErrorKind.AUTH_EXPIRED):
        logger.info(f"{request.url.path}: {exc.kind.value}")
        return error_response(request, 401, exc.message, exc.kind)

    if exc.kind == ErrorKind.PROVIDER_API:
        raw_status = getattr(exc, "status", None)
        status = provider_status(raw_status)
        logger.warning(f"{request.url.path}: Gmail error {raw_status}")
        if status == 401:
            # Gmail rejected the token: the user has to consent again
            return error_response(
                request, 401,
                "Gmail access was rejected. Please sign in again.",
                ErrorKind.AUTH_EXPIRED,
            )
        message = exc.message if status == raw_status else "Unable to reach Gmail"
        return error_response(request, status, message, exc.kind)

    if exc.kind == ErrorKind.BAD_REQUEST:
        return error_response(request, 400, exc.message, exc.kind)

    logger.error(f"{request.url.path}: {exc.message}")
    return error_response(request, 500, exc.message, ErrorKind.INTERNAL)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    # Unexpected errors - log full traceback, never echo details
    logger.exception(f"Unexpected error on {request.url.path}: {exc}")
    return error_response(request, 500, "Unexpected server error", ErrorKind.INTERNAL)


@app.get("/")
async def root():
    """Root endpoint - points to docs."""
    return {
        "message": "SwipeMail API",
        "docs": "/docs",
        "health": "/api/health",
    }
