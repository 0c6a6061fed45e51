"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from blogadmin import __version__
from blogadmin.core.config import settings
from blogadmin.core.middleware import setup_middleware
from blogadmin.core.rate_limiter import limiter
from blogadmin.core.tokens import get_token_service
from blogadmin.core.exceptions import (
    BlogAdminError,
    AuthenticationError,
    AuthorizationError,
    InvalidRoleError,
    InvalidUploadError,
    ResourceConflictError,
    ResourceNotFoundError,
    RevocationUnavailableError,
    TokenRejected,
    UnknownPermissionError,
)
from blogadmin.services.image_service import image_service

from blogadmin.api.auth import router as auth_router
from blogadmin.api.blogs import router as blogs_router
from blogadmin.api.users import router as users_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("blogadmin")

STATUS_CODES = [
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (InvalidRoleError, 400),
    (InvalidUploadError, 400),
    (ResourceNotFoundError, 404),
    (ResourceConflictError, 409),
    (RevocationUnavailableError, 503),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    from blogadmin.services.cache_service import cache_service
    if cache_service.health_check():
        logger.info("Redis connected, logout revocation active")
    else:
        logger.warning("Redis not available, logged-out tokens stay valid until expiry")

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


async def blog_admin_exception_handler(request: Request, exc: BlogAdminError):
    status_code = 500
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            status_code = code
            break
    content = {"detail": exc.message, "code": exc.code}
    headers = None
    if isinstance(exc, TokenRejected):
        content["reason"] = exc.reason.value
    if status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    if status_code == 500:
        logger.error("Unhandled %s on %s %s: %s", type(exc).__name__,
                     request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def unknown_permission_handler(request: Request, exc: UnknownPermissionError):
    logger.error(
        "Authorization wiring defect on %s %s: unknown permission %r",
        request.method, request.url.path, exc.permission,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal authorization error", "code": exc.code},
    )


def create_app() -> FastAPI:
    """Build the application. Fails fast when the token secret is missing."""
    get_token_service()
    image_service.ensure_dir()

    app = FastAPI(
        title="Blog Admin API",
        description="Blog administration backend with role-based access control",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware
    setup_middleware(app)

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(UnknownPermissionError, unknown_permission_handler)
    app.add_exception_handler(BlogAdminError, blog_admin_exception_handler)

    # Register routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(blogs_router, prefix="/api")
    app.include_router(users_router, prefix="/api")

    app.mount(
        settings.UPLOAD_URL_PREFIX,
        StaticFiles(directory=str(image_service.upload_dir)),
        name="uploads",
    )

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/api/health")
    async def health():
        """Quick health check endpoint."""
        return {"status": "ok"}

    return app
