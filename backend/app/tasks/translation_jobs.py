# backend/app/tasks/translation_jobs.py
import asyncio
import logging
from typing import Any

from celery import Task as CeleryTaskDef
from pydantic import ValidationError

from app.core.config import settings
from app.db.session import get_worker_session_factory
from app.exceptions import FatalOrchestrationError, JobNotFoundError, LedgerIntegrityError
from app.modules.translation.core.di import ServiceContainer
from app.modules.translation.core.orchestrator import JobOutcome
from app.modules.translation.services.progress import RedisProgressPublisher
from app.schemas.translation_job import JobDescriptor
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _trim(message: str) -> str:
    return message[: settings.JOB_ERROR_MESSAGE_MAX_LEN]


def _outcome_to_result(outcome: JobOutcome) -> dict[str, Any]:
    return {
        "job_id": str(outcome.job_id),
        "status": outcome.status.value,
        "total_fields": outcome.total_fields,
        "processed_fields": outcome.processed_fields,
        "failed_fields": outcome.failed_fields,
        "skipped_fields": outcome.skipped_fields,
        "tokens_used": outcome.tokens_used,
        "progress": outcome.progress,
        "resource_status": outcome.resource_status.value if outcome.resource_status else None,
        "unknown_language_codes": outcome.unknown_language_codes,
    }


async def _execute_translation_job_async_logic(
    descriptor: JobDescriptor, log_prefix: str
) -> dict[str, Any]:
    publisher = RedisProgressPublisher.from_settings()
    try:
        container = ServiceContainer(get_worker_session_factory(), progress_publisher=publisher)
        orchestrator = container.build_orchestrator()
        logger.info(f"{log_prefix} Orchestrator built. Running job.")
        outcome = await orchestrator.run(descriptor.job_id)
    finally:
        if publisher is not None:
            await publisher.close()
    return _outcome_to_result(outcome)


@celery_app.task(
    name=settings.CELERY_TRANSLATION_TASK_NAME,
    bind=True,
    track_started=True,
    acks_late=settings.CELERY_ACKS_LATE,
    autoretry_for=(FatalOrchestrationError, LedgerIntegrityError),
    dont_autoretry_for=(JobNotFoundError,),
    max_retries=settings.TRANSLATION_JOB_MAX_ATTEMPTS - 1,
    retry_backoff=settings.TRANSLATION_JOB_RETRY_BACKOFF_S,
    retry_backoff_max=600,
    retry_jitter=False,
)
def execute_translation_job_task(self: CeleryTaskDef, descriptor: dict[str, Any]) -> dict[str, Any]:
    """
    Queue consumer for one translation job. Runs the async orchestrator in a
    fresh event loop; fatal errors are re-raised so Celery retries the job with
    exponential backoff.
    """
    celery_task_id = str(self.request.id) if self.request.id else "unknown-celery-id"
    attempt = self.request.retries + 1
    job_ref = None
    if isinstance(descriptor, dict):
        job_ref = descriptor.get("job_id") or descriptor.get("jobId")
    log_prefix = (
        f"[CeleryTaskWrapper:{self.name} CeleryID:{celery_task_id} DBJobID:{job_ref} "
        f"Attempt:{attempt}/{settings.TRANSLATION_JOB_MAX_ATTEMPTS}]"
    )

    try:
        job_descriptor = JobDescriptor.model_validate(descriptor)
    except ValidationError as e:
        err_msg = f"Invalid job descriptor, cannot proceed: {e}"
        logger.error(f"{log_prefix} {_trim(err_msg)}")
        raise ValueError(err_msg) from None

    logger.info(
        f"{log_prefix} Received job for resource {job_descriptor.resource_id}, "
        f"engine {job_descriptor.engine.value}, languages {job_descriptor.target_language_codes}."
    )
    try:
        result = asyncio.run(_execute_translation_job_async_logic(job_descriptor, log_prefix))
    except (FatalOrchestrationError, LedgerIntegrityError) as e:
        logger.error(
            f"{log_prefix} Fatal error ({type(e).__name__}): {_trim(str(e))}",
            exc_info=settings.LOG_TRACEBACKS,
        )
        raise
    logger.info(
        f"{log_prefix} Job finished {result['status']}: "
        f"{result['processed_fields']}/{result['total_fields']} processed, "
        f"{result['failed_fields']} failed."
    )
    return result
