"""
Past Questions Portal - Main FastAPI Application
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import sys

from app.core.config import settings
from app.core.database import connect_db, disconnect_db
from app.core.errors import AppError
from app.core.redis_client import connect_redis, disconnect_redis
from app.core.object_store import init_object_store

from app.api import auth, images, stats

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info("Starting Past Questions backend application...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    try:
        # Startup
        logger.info("Initializing database connection...")
        await connect_db()

        logger.info("Initializing Redis connection...")
        await connect_redis()

        logger.info("Initializing object store...")
        await init_object_store()

        logger.info("All services initialized successfully")

        yield

        # Shutdown
        logger.info("Shutting down application...")
        await disconnect_db()
        await disconnect_redis()
        logger.info("Shutdown complete")
    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        raise


app = FastAPI(
    title="Past Questions API",
    description="University past questions portal - Backend API",
    version="1.0.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/api/redoc" if settings.ENVIRONMENT == "development" else None,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, headers: dict = None) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    return error_response(400, f"{location}: {message}" if location else message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(500, str(exc) or "Internal server error")


# Include API routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(images.router, prefix="/api/images", tags=["Images"])
app.include_router(stats.router, prefix="/api/stats", tags=["Statistics"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/")
async def root():
    """Root endpoint redirect info"""
    return {
        "message": "Past Questions API",
        "docs": "/api/docs",
        "health": "/api/health"
    }
