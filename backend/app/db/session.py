# backend/app/db/session.py
import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.config import settings

logger = logging.getLogger(__name__)

# --- Asynchronous Engine and Session Setup (for FastAPI) ---
fastapi_async_engine: AsyncEngine | None = None
FastAPISessionLocal: async_sessionmaker[AsyncSession] | None = None


def _initialize_fastapi_db_resources_sync():
    """
    Initialize FastAPI's async database engine and session maker.
    Called by the lifespan manager.
    """
    global fastapi_async_engine, FastAPISessionLocal

    if fastapi_async_engine is not None:
        logger.info("FastAPI: Asynchronous database resources already initialized.")
        return

    logger.info("FastAPI: Initializing asynchronous database engine and session maker.")
    try:
        db_url_fastapi_obj = settings.ASYNC_SQLALCHEMY_DATABASE_URL
        if not db_url_fastapi_obj:
            raise ValueError(
                "FastAPI: ASYNC_SQLALCHEMY_DATABASE_URL is empty or None after computation."
            )
        db_url_fastapi_str = str(db_url_fastapi_obj)

        current_engine = create_async_engine(
            db_url_fastapi_str,
            pool_pre_ping=True,
            echo=settings.DB_ECHO,
        )
        current_session_local = async_sessionmaker(
            bind=current_engine,
            autoflush=False,
            expire_on_commit=False,
            class_=AsyncSession,
        )
        fastapi_async_engine = current_engine
        FastAPISessionLocal = current_session_local
        logger.info(
            f"FastAPI: Asynchronous database engine ({db_url_fastapi_str.split('@')[-1]}) and session maker configured."
        )
    except Exception as e:
        logger.critical(
            f"CRITICAL: FastAPI: Failed to initialize asynchronous database engine: {e}",
            exc_info=True,
        )
        fastapi_async_engine = None
        FastAPISessionLocal = None
        raise RuntimeError(
            f"FastAPI: Failed to initialize asynchronous database engine during startup: {e}"
        ) from e


async def _dispose_fastapi_db_resources_async():
    global fastapi_async_engine, FastAPISessionLocal
    if fastapi_async_engine:
        logger.info("FastAPI: Disposing FastAPI asynchronous database engine.")
        await fastapi_async_engine.dispose()
        fastapi_async_engine = None
        FastAPISessionLocal = None
    else:
        logger.info("FastAPI: No FastAPI asynchronous database engine to dispose.")


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    if FastAPISessionLocal is None:
        logger.critical("FastAPI: FastAPISessionLocal is not initialized.")
        raise RuntimeError(
            "FastAPI: FastAPISessionLocal is not initialized. "
            "Ensure DB resources are initialized via lifespan."
        )
    async with FastAPISessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            logger.error(
                "FastAPI: Async DB session rolled back due to an exception.", exc_info=True
            )
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for services that open their own short-lived sessions (ledger, progress)."""
    if FastAPISessionLocal is None:
        raise RuntimeError("FastAPI: FastAPISessionLocal is not initialized.")
    return FastAPISessionLocal


# --- Resources for Celery Worker ---
worker_async_engine: AsyncEngine | None = None
WorkerSessionLocal: async_sessionmaker[AsyncSession] | None = None


def initialize_worker_db_resources():
    global worker_async_engine, WorkerSessionLocal
    if worker_async_engine is not None:
        logger.info(
            "CELERY_WORKER: Database engine and session factory already initialized for this process."
        )
        return

    logger.info("CELERY_WORKER: Initializing database engine and session factory.")
    try:
        db_url_worker_obj = settings.ASYNC_SQLALCHEMY_DATABASE_URL_WORKER
        if not db_url_worker_obj:
            raise ValueError(
                "Database URI for Celery worker (ASYNC_SQLALCHEMY_DATABASE_URL_WORKER) is empty or None."
            )
        db_url_worker_str = str(db_url_worker_obj)

        # Each task runs in its own event loop (asyncio.run), so pooled
        # connections must not outlive the loop that opened them.
        current_worker_engine = create_async_engine(
            db_url_worker_str,
            poolclass=NullPool,
            echo=settings.DB_ECHO_WORKER,
        )
        current_worker_session_local = async_sessionmaker(
            bind=current_worker_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        worker_async_engine = current_worker_engine
        WorkerSessionLocal = current_worker_session_local
        logger.info(
            f"CELERY_WORKER: Database engine ({db_url_worker_str.split('@')[-1]}) and session factory initialized."
        )
    except Exception as e:
        logger.critical(
            f"CRITICAL: CELERY_WORKER: Failed to initialize database engine: {e}", exc_info=True
        )
        worker_async_engine = None
        WorkerSessionLocal = None
        raise RuntimeError(f"CELERY_WORKER: Failed to initialize database engine: {e}") from e


def dispose_worker_db_resources_sync():
    global worker_async_engine, WorkerSessionLocal
    if worker_async_engine:
        logger.info("CELERY_WORKER: Disposing database engine (sync call).")
        try:
            asyncio.run(worker_async_engine.dispose())
        except RuntimeError as e:
            logger.warning(
                f"CELERY_WORKER: asyncio.run() failed during dispose: {e}. Common during shutdown."
            )
        except Exception as e:
            logger.error(
                f"CELERY_WORKER: Unexpected exception during worker_async_engine.dispose(): {e}",
                exc_info=True,
            )
        finally:
            worker_async_engine = None
            WorkerSessionLocal = None
    else:
        logger.info("CELERY_WORKER: No database engine to dispose for this worker process.")


def get_worker_session_factory() -> async_sessionmaker[AsyncSession]:
    if WorkerSessionLocal is None:
        logger.critical(
            "CELERY_WORKER: WorkerSessionLocal not initialized! DB init failed or signal not handled."
        )
        raise RuntimeError(
            "Database session factory (WorkerSessionLocal) not initialized for Celery worker."
        )
    return WorkerSessionLocal


# --- FastAPI Lifespan Event Handler Integration ---
async def lifespan_db_manager(_app_instance, event_type: str):
    lifespan_logger = logging.getLogger("app.db.lifespan")

    if event_type == "startup":
        lifespan_logger.info("FastAPI Lifespan: Startup event - Initializing DB resources.")
        _initialize_fastapi_db_resources_sync()

        if fastapi_async_engine is None:
            raise RuntimeError(
                "FastAPI engine failed to initialize during startup and did not raise."
            )
        lifespan_logger.info("FastAPI Lifespan: Testing DB connection.")
        try:
            async with fastapi_async_engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
            lifespan_logger.info("FastAPI Lifespan: Database connection successful on startup.")
        except Exception as e:
            lifespan_logger.error(
                f"FastAPI Lifespan: Database connection test failed: {e}", exc_info=True
            )
            await _dispose_fastapi_db_resources_async()
            raise RuntimeError(f"FastAPI: Database connection test failed on startup: {e}") from e

    elif event_type == "shutdown":
        lifespan_logger.info("FastAPI Lifespan: Shutdown event - Disposing DB resources.")
        await _dispose_fastapi_db_resources_async()
