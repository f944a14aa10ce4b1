# app/main.py
"""
Main application file for TaskCadence.
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
import logging
import json
from datetime import datetime

from app.api.api import api_router
from app.core.config import settings
from app.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    RecurrenceException,
    TaskCadenceException,
    ValidationException,
)
from app.db.session import init_db

# --- Logging Configuration ---
LOG_LEVEL = getattr(logging, settings.LOG_LEVEL, logging.INFO)

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("app")
logger.setLevel(LOG_LEVEL)

logger.info(f"Configured root logger ('{logger.name}') effective level: {logging.getLevelName(logger.getEffectiveLevel())}")
# --- END: Logging Configuration ---

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for scheduling recurring tasks",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)

# Set up CORS
origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS if origin]
logger.info(f"Processed CORS origins: {origins}")

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Total-Count"],
        max_age=86400,
    )
else:
    logger.warning("No CORS origins configured; cross-origin requests are not allowed")


# --- Validation Error Handler ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = jsonable_encoder(exc.errors())
    logger.error(f"Request validation error on {request.method} {request.url.path}")
    logger.error(f"Validation Errors:\n{json.dumps(error_details, indent=2)}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": error_details},
    )


# --- Domain Error Handler ---
@app.exception_handler(TaskCadenceException)
async def taskcadence_exception_handler(request: Request, exc: TaskCadenceException):
    if isinstance(exc, EntityNotFoundException):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationException):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, (BusinessRuleException, RecurrenceException)):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(exc.to_dict()),
    )


# Log requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = datetime.now()
    logger.info(f"-> Request: {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        process_time = (datetime.now() - start_time).total_seconds()
        logger.info(f"<- Response: {response.status_code} ({process_time:.4f}s)")
        return response
    except Exception as e:
        process_time = (datetime.now() - start_time).total_seconds()
        logger.exception(
            f"!! Error during request processing for {request.method} {request.url.path} ({process_time:.4f}s): {e}"
        )
        raise e


@app.on_event("startup")
async def create_tables_on_startup():
    """Create missing tables during application startup."""
    init_db()


# Include the API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Root and Health Check Endpoints
@app.get("/", tags=["Root"], summary="API Root Endpoint")
def read_root():
    """Provides basic API information and links to documentation."""
    return {
        "message": "Welcome to TaskCadence API",
        "project_name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs_url": app.docs_url,
        "redoc_url": app.redoc_url,
        "openapi_url": app.openapi_url,
    }


@app.get("/health", tags=["Health"], summary="API Health Check")
def health_check():
    """Returns the operational status of the API."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
