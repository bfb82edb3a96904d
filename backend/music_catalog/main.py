from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as SchemaValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time

from music_catalog.routes import admin, auth, catalog
from music_catalog.config import get_settings
from music_catalog.guard import RedirectRequired
from music_catalog.logger import get_logger
from music_catalog.session import SessionManager
from music_catalog.services.analytics import Events, create_tracker
from music_catalog.exceptions import (
    AuthenticationError, ConfigurationError, ConfirmationRequired, DatabaseError,
    ExternalServiceError, FileUploadError, NotFoundError, ValidationError
)

# Initialize settings and logging
settings = get_settings()
logger = get_logger("main")

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Browse genres, artists and songs, with an admin area for the catalog",
    version="1.0.0",
    debug=settings.debug,
)

# Shared services
app.state.analytics = create_tracker()
app.state.session_manager = SessionManager(analytics=app.state.analytics)

# Include routes
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(catalog.router)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

UNTRACKED_PATHS = ("/health", "/docs", "/redoc", "/openapi.json", "/session")


@app.middleware("http")
async def track_page_views(request: Request, call_next):
    """Record a page view for every screen rendered successfully."""
    response = await call_next(request)
    path = request.url.path
    if (
        request.method == "GET"
        and response.status_code < 300
        and not path.startswith(UNTRACKED_PATHS)
    ):
        request.app.state.analytics.track(Events.PAGE_VIEW, {"page_path": path})
    return response


# Add request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(f"{process_time:.4f}")
    return response


# Custom exception handlers
@app.exception_handler(RedirectRequired)
async def redirect_handler(request: Request, exc: RedirectRequired):
    """Send visitors the guard turned away to login or home."""
    headers = {}
    if exc.decision.redirect_from:
        headers["X-Redirect-From"] = exc.decision.redirect_from
    return RedirectResponse(
        url=exc.decision.location,
        status_code=status.HTTP_303_SEE_OTHER,
        headers=headers,
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle form validation errors."""
    logger.warning(f"Validation error: {exc.message} {exc.errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "errors": exc.errors, "error_type": "ValidationError"}
    )


@app.exception_handler(SchemaValidationError)
async def schema_validation_exception_handler(request: Request, exc: SchemaValidationError):
    """Handle form models rejecting submitted values."""
    logger.warning(f"Form validation error: {exc}")
    errors = {
        ".".join(str(part) for part in error["loc"]) or "form": error["msg"]
        for error in exc.errors()
    }
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Form validation failed", "errors": errors, "error_type": "ValidationError"}
    )


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    logger.info(f"Not found: {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message, "back": exc.back, "error_type": "NotFoundError"}
    )


@app.exception_handler(ConfirmationRequired)
async def confirmation_exception_handler(request: Request, exc: ConfirmationRequired):
    """Refuse a destructive action until it is confirmed."""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": exc.message, "confirm_url": exc.confirm_url, "error_type": "ConfirmationRequired"}
    )


@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    logger.warning(f"Authentication error: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": exc.message, "error_type": "AuthenticationError"}
    )


@app.exception_handler(DatabaseError)
async def database_exception_handler(request: Request, exc: DatabaseError):
    """Handle database errors."""
    logger.error(f"Database error: {exc.message} {exc.details or ''}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database operation failed, please try again", "error_type": "DatabaseError"}
    )


@app.exception_handler(FileUploadError)
async def file_upload_exception_handler(request: Request, exc: FileUploadError):
    """Handle file upload errors."""
    logger.error(f"File upload error: {exc.message} {exc.details or ''}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": exc.message, "error_type": "FileUploadError"}
    )


@app.exception_handler(ExternalServiceError)
async def external_service_exception_handler(request: Request, exc: ExternalServiceError):
    logger.error(f"External service error: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.message, "error_type": "ExternalServiceError"}
    )


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Service is misconfigured", "error_type": "ConfigurationError"}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI validation errors."""
    logger.warning(f"Request validation error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Request validation failed", "errors": exc.errors()}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown paths get the not-found screen; other HTTP errors pass through."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Page not found", "home": "/"}
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error_type": "UnexpectedError"}
    )


@app.get("/health")
async def health_check():
    """General health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "analytics": app.state.analytics.enabled,
        "active_sessions": len(app.state.session_manager),
        "timestamp": time.time()
    }


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"CORS origins: {settings.cors_origins}")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop every session store on shutdown."""
    logger.info(f"Shutting down {settings.app_name}")
    app.state.session_manager.stop()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "music_catalog.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
