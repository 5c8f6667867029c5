# backend/app/api/routers/translation_jobs.py
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi import Path as FastApiPath
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud
from app.core.config import settings
from app.db.models.translation_job import TranslationJob, TranslationJobStatus
from app.db.session import get_async_session
from app.modules.translation.services import progress as progress_service
from app.schemas.translation_job import (
    JobDescriptor,
    JobProgress,
    ResourceTranslationStatusRead,
    TranslationJobCreate,
    TranslationJobRead,
)
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Translation Jobs"],
    responses={status.HTTP_404_NOT_FOUND: {"description": "Resource not found"}},
)


async def _create_db_job_and_set_celery_id(
    db: AsyncSession, job_in: TranslationJobCreate
) -> TranslationJob:
    """Creates the job row, then links it to a Celery task id (the job id as string)."""
    try:
        db_job = await crud.translation_job.create(db, obj_in=job_in)
        logger.info(
            f"Translation job {db_job.id} created for shop {job_in.shop_id}, "
            f"resource {job_in.resource_id}, languages {job_in.target_language_codes}."
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Database error while creating translation job for resource {job_in.resource_id}: {e}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="JOB_CREATION_DB_ERROR"
        ) from e

    try:
        await crud.translation_job.set_celery_task_id(db, job_id=db_job.id, task_id=str(db_job.id))
        await db.commit()
        await db.refresh(db_job)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Database error while updating celery_task_id for job {db_job.id}: {e}", exc_info=True
        )
        await _mark_job_failed(db, db_job, "Internal error: Failed to link Celery task ID.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JOB_CELERY_ID_UPDATE_DB_ERROR",
        ) from e
    return db_job


async def _mark_job_failed(db: AsyncSession, db_job: TranslationJob, message: str) -> None:
    try:
        await crud.translation_job.mark_terminal(
            db,
            job_id=db_job.id,
            status=TranslationJobStatus.FAILED,
            error=message[: settings.JOB_ERROR_MESSAGE_MAX_LEN],
        )
        await db.commit()
        await db.refresh(db_job)
    except SQLAlchemyError as db_exc:
        await db.rollback()
        logger.critical(f"Failed to mark job {db_job.id} as FAILED: {db_exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JOB_ENQUEUE_FAILED_DB_UPDATE_ERROR",
        ) from db_exc


async def _enqueue_celery_task_and_handle_errors(db: AsyncSession, db_job: TranslationJob) -> None:
    """Enqueues the job descriptor and marks the job FAILED if the broker refuses it."""
    descriptor = JobDescriptor(
        job_id=db_job.id,
        shop_id=db_job.shop_id,
        resource_id=db_job.resource_id,
        target_language_codes=db_job.target_language_codes,
        engine=db_job.engine,
    )
    task_name = settings.CELERY_TRANSLATION_TASK_NAME
    try:
        celery_app.send_task(
            name=task_name,
            args=[descriptor.model_dump(mode="json")],
            task_id=db_job.celery_task_id,
        )
        logger.info(
            f"Successfully enqueued Celery task '{task_name}' with ID {db_job.celery_task_id} "
            f"for translation job {db_job.id}."
        )
    except Exception as e:  # Broker down, serialization problems and the like
        logger.error(f"Failed to enqueue Celery task for job {db_job.id}: {e}", exc_info=True)
        await _mark_job_failed(db, db_job, f"Failed to enqueue Celery task: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="JOB_ENQUEUE_FAILED_NOW_MARKED_AS_FAILED_IN_DB",
        ) from e


@router.post(
    "/translation-jobs",
    response_model=TranslationJobRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a translation job",
    description=(
        "Creates a translation job for one resource and a list of target languages, "
        "then enqueues it for asynchronous processing."
    ),
)
async def create_translation_job(
    job_in: Annotated[TranslationJobCreate, Body(...)],
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> TranslationJob:
    resource = await crud.resource.get(db, id=job_in.resource_id)
    if resource is None or resource.shop_id != job_in.shop_id:
        logger.warning(
            f"Translation job rejected: resource {job_in.resource_id} not found for shop {job_in.shop_id}."
        )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="RESOURCE_NOT_FOUND")

    db_job = await _create_db_job_and_set_celery_id(db, job_in)
    await _enqueue_celery_task_and_handle_errors(db, db_job)
    return db_job


@router.get(
    "/translation-jobs/{job_id}",
    response_model=TranslationJobRead,
    summary="Get a translation job",
)
async def get_translation_job(
    job_id: Annotated[UUID, FastApiPath(description="The ID of the translation job")],
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> TranslationJob:
    db_job = await crud.translation_job.get(db, id=job_id)
    if db_job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="TRANSLATION_JOB_NOT_FOUND"
        )
    return db_job


@router.get(
    "/translation-jobs/{job_id}/progress",
    response_model=JobProgress,
    summary="Get translation job progress",
)
async def get_translation_job_progress(
    job_id: Annotated[UUID, FastApiPath(description="The ID of the translation job")],
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> JobProgress:
    # JobNotFoundError is mapped to 404 by the application exception handlers
    return await progress_service.get_progress(db, job_id)


@router.get(
    "/resources/{resource_id}/translation-status",
    response_model=ResourceTranslationStatusRead,
    summary="Get the translation rollup of a resource",
)
async def get_resource_translation_status(
    resource_id: Annotated[UUID, FastApiPath(description="The ID of the resource")],
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> ResourceTranslationStatusRead:
    return await progress_service.get_resource_status(db, resource_id)
