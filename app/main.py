# app/main.py - FastAPI application: logging, CORS, error mapping, routers
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import traceback
import time

from app.core.config import settings
from app.core.db import db_manager, health_check as db_health_check
from app.core.errors import (
    AuthorizationError,
    CropFailure,
    FieldError,
    NotFoundOrForbidden,
    TransientIOError,
    ValidationError,
)
from app.api.routers import photos, students


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting {settings.API_TITLE}...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Database URL: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'local'}")

    # Production schema is managed by alembic
    if not settings.is_production:
        logger.info("Creating database tables...")
        db_manager.create_tables()

    yield

    db_manager.close()
    logger.info(f"Shutting down {settings.API_TITLE}...")


app = FastAPI(
    title=settings.API_TITLE,
    description="Student records and passport-photo ID cards",
    version=settings.API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=3600,
)


def _error(status_code: int, message: str, details=None, headers=None) -> JSONResponse:
    content = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(400, exc.message, [e.to_dict() for e in exc.errors])


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed requests (bad JSON, missing form fields) use the same 400 shape"""
    details = []
    for err in exc.errors():
        # Drop the "body"/"query"/"path" prefix
        loc = [str(part) for part in err.get("loc", ())[1:]]
        details.append(FieldError(".".join(loc) or "__root__", err.get("msg", "Invalid value")).to_dict())
    return _error(400, "Validation failed", details)


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    logger.info(f"Unauthorized {request.method} {request.url.path}: {exc.message}")
    return _error(401, "Unauthorized", headers={"WWW-Authenticate": "Bearer"})


@app.exception_handler(NotFoundOrForbidden)
async def not_found_handler(request: Request, exc: NotFoundOrForbidden):
    return _error(404, exc.message)


@app.exception_handler(CropFailure)
async def crop_failure_handler(request: Request, exc: CropFailure):
    return _error(422, exc.message)


@app.exception_handler(TransientIOError)
async def transient_io_handler(request: Request, exc: TransientIOError):
    logger.warning(f"Transient failure on {request.method} {request.url.path}: {exc.message}")
    return _error(503, exc.message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    logger.error(traceback.format_exc())

    if settings.is_development:
        return JSONResponse(
            status_code=500,
            content={"error": str(exc), "traceback": traceback.format_exc()},
        )
    return _error(500, "Internal server error")


@app.get("/health")
async def health_check():
    database = db_health_check()
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "environment": settings.ENV,
        "version": settings.API_VERSION,
        "database": database,
    }


app.include_router(students.router, prefix="/api/students", tags=["Students"])
app.include_router(photos.router, prefix="/api/photos", tags=["Photos"])


@app.get("/")
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs_url": "/docs" if settings.is_development else "Documentation disabled in production",
    }
