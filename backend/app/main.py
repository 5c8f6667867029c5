# backend/app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routers.billing import router as billing_router
from app.api.routers.translation_jobs import router as translation_jobs_router
from app.core.config import settings
from app.core.logging_config import setup_logging

# Import all models to ensure they are registered in the registry
from app.db import base  # noqa: F401
from app.db.session import (
    get_async_session,  # Dependency for path operations
    lifespan_db_manager,  # Manages DB init/dispose for FastAPI
)
from app.exceptions import (
    InsufficientTokensError,
    JobNotFoundError,
    LedgerIntegrityError,
    ResourceNotFoundError,
)

setup_logging(level_name=settings.LOG_LEVEL, log_file_path=settings.LOG_FILE_PATH)
logger = logging.getLogger(__name__)


# --- Lifespan Management ---
@asynccontextmanager
async def lifespan(_app_instance: FastAPI):
    logger.info(f"Starting up {settings.APP_NAME} v{settings.APP_VERSION}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    try:
        await lifespan_db_manager(_app_instance, "startup")
        logger.info("LIFESPAN_HOOK: Database resources initialized via lifespan_db_manager.")
    except Exception as e:
        logger.critical(
            f"LIFESPAN_HOOK: CRITICAL - Failed to initialize database resources: {e}", exc_info=True
        )
        raise  # Stop app startup if DB init fails

    yield  # Application runs here

    logger.info(f"Shutting down {settings.APP_NAME}...")
    try:
        await lifespan_db_manager(_app_instance, "shutdown")
        logger.info("LIFESPAN_HOOK: Database resources disposed via lifespan_db_manager.")
    except Exception as e:
        logger.error(f"LIFESPAN_HOOK: Error during database resource disposal: {e}", exc_info=True)


# --- FastAPI App Initialization ---
if settings.ROOT_PATH and settings.ROOT_PATH.strip("/"):
    effective_root_path = "/" + settings.ROOT_PATH.strip("/")
else:
    effective_root_path = ""

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    lifespan=lifespan,
    root_path=effective_root_path,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)


# --- Exception Handlers ---
def _jsonable_errors(error_details: list) -> list:
    # pydantic may put the raw exception object in ctx
    cleaned = []
    for error in error_details:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        cleaned.append(error)
    return cleaned


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error_details = exc.errors()
    log_body = None
    if settings.DEBUG and request.method in ["POST", "PUT", "PATCH"]:
        try:
            body_bytes = await request.body()
            log_body = body_bytes.decode()
        except Exception:
            log_body = "<Could not read or decode body>"
    logger.warning(
        f"Request validation error: {request.method} {request.url.path} - Errors: {error_details}",
        extra={"errors": error_details, "request_body": log_body},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": _jsonable_errors(error_details)},
    )


@app.exception_handler(JobNotFoundError)
async def job_not_found_handler(request: Request, exc: JobNotFoundError):
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND, content={"detail": "TRANSLATION_JOB_NOT_FOUND"}
    )


@app.exception_handler(ResourceNotFoundError)
async def resource_not_found_handler(request: Request, exc: ResourceNotFoundError):
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND, content={"detail": "RESOURCE_NOT_FOUND"}
    )


@app.exception_handler(InsufficientTokensError)
async def insufficient_tokens_handler(request: Request, exc: InsufficientTokensError):
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        content={
            "detail": "INSUFFICIENT_TOKENS",
            "required": exc.required,
            "available": exc.available,
        },
    )


@app.exception_handler(LedgerIntegrityError)
async def ledger_integrity_handler(request: Request, exc: LedgerIntegrityError):
    logger.error(f"Ledger failure during {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "LEDGER_INTEGRITY_ERROR"},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler_custom(request: Request, exc: HTTPException):
    log_message = f"HTTPException: Status={exc.status_code}, Detail='{exc.detail}' for {request.method} {request.url.path}"
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(log_message, exc_info=True)
    else:
        logger.warning(log_message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler_custom(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception during request: {request.method} {request.url.path}", exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected internal server error occurred."},
    )


# --- API v1 Router Definition and Inclusions ---
api_v1_router = APIRouter()
api_v1_router.include_router(translation_jobs_router)
api_v1_router.include_router(billing_router)  # prefix is already "/billing" in router


@api_v1_router.get("/", tags=["API Root"], summary="API v1 Root Endpoint")
async def api_v1_root_endpoint():
    return {
        "message": f"Welcome to {settings.APP_NAME} - API Version 1",
        "version": settings.APP_VERSION,
        "documentation_url": app.docs_url,
    }


@api_v1_router.get(
    "/healthz",
    tags=["Health Checks"],
    summary="Detailed API and Dependencies Health Check",
    status_code=status.HTTP_200_OK,
)
async def health_check_api_v1_detailed(db: AsyncSession = Depends(get_async_session)):
    db_status = "unavailable"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(
            f"Health check (detailed): Database connection failed. Error: {e}",
            exc_info=settings.DEBUG,
        )
    dependencies_status = {"database": db_status}
    overall_status = (
        "ok"
        if all(dep_status == "connected" for dep_status in dependencies_status.values())
        else "degraded"
    )
    if overall_status == "ok":
        return {"status": overall_status, "dependencies": dependencies_status}
    logger.error(
        f"API health check (detailed) failed. Status: {overall_status}, Dependencies: {dependencies_status}"
    )
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"status": overall_status, "dependencies": dependencies_status},
    )


app.include_router(api_v1_router, prefix=settings.API_V1_STR)


# --- Health Check Endpoint (at app root) ---
@app.get(
    "/health",
    tags=["System Health"],
    summary="Basic System Liveness Check",
    status_code=status.HTTP_200_OK,
    include_in_schema=False,
)
async def health_check_basic_system():
    return {"status": "healthy"}


# --- Main entry point for Uvicorn direct run ---
if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting Uvicorn server directly for {settings.APP_NAME} (local debugging)...")
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
