# backend/app/tasks/celery_app.py
import logging

import nest_asyncio
from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.session import dispose_worker_db_resources_sync, initialize_worker_db_resources

logger = logging.getLogger("app.tasks.celery_app")

celery_app = Celery(
    "worker",
    broker=str(settings.CELERY_BROKER_URL),
    backend=str(settings.CELERY_RESULT_BACKEND),
    # Modules imported by the worker so their tasks are registered
    include=["app.tasks.translation_jobs"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    task_track_started=True,
    task_acks_late=settings.CELERY_ACKS_LATE,
    # A job re-delivered after a worker crash resumes through the idempotent skip
    task_reject_on_worker_lost=True,
    result_expires=settings.CELERY_RESULT_EXPIRES,
)


# --- Worker Process Lifecycle Signal Handlers ---


@worker_process_init.connect(weak=False)
def init_worker_process_signal(**_kwargs):
    """Signal handler for when a Celery worker process starts."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE_PATH)
    logger.info("CELERY_WORKER_PROCESS_INIT: Applying nest_asyncio for event loop compatibility.")
    nest_asyncio.apply()
    initialize_worker_db_resources()
    logger.info("CELERY_WORKER_PROCESS_INIT: DB resources initialization complete.")


@worker_process_shutdown.connect(weak=False)
def shutdown_worker_process_signal(**_kwargs):
    """Signal handler for when a Celery worker process shuts down."""
    logger.info("CELERY_WORKER_PROCESS_SHUTDOWN: Signal received. Disposing DB resources.")
    dispose_worker_db_resources_sync()
    logger.info("CELERY_WORKER_PROCESS_SHUTDOWN: DB resources disposal complete.")
