# backend/app/crud/crud_translation_job.py
import logging
from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.db.models.translation_job import TranslationJob, TranslationJobStatus
from app.schemas.translation_job import TranslationJobCreate

logger = logging.getLogger(__name__)


class CRUDTranslationJob(CRUDBase[TranslationJob, TranslationJobCreate, BaseModel]):
    async def mark_processing(
        self, db: AsyncSession, *, job_id: UUID, total_fields: int
    ) -> None:
        """
        Start (or restart) a run: PROCESSING, counters reset, started_at stamped.
        The caller commits.
        """
        await db.execute(
            update(self.model)
            .where(self.model.id == job_id)
            .values(
                status=TranslationJobStatus.PROCESSING,
                total_fields=total_fields,
                processed_fields=0,
                failed_fields=0,
                progress=0,
                error=None,
                started_at=datetime.now(UTC),
                completed_at=None,
                failed_at=None,
            )
        )
        logger.debug(f"Job {job_id} marked PROCESSING with total_fields={total_fields}.")

    async def save_counters(
        self,
        db: AsyncSession,
        *,
        job_id: UUID,
        processed_fields: int,
        failed_fields: int,
        progress: int,
    ) -> None:
        await db.execute(
            update(self.model)
            .where(self.model.id == job_id)
            .values(
                processed_fields=processed_fields,
                failed_fields=failed_fields,
                progress=progress,
            )
        )

    async def mark_terminal(
        self,
        db: AsyncSession,
        *,
        job_id: UUID,
        status: TranslationJobStatus,
        error: str | None = None,
    ) -> None:
        """
        Stamp a terminal status. COMPLETED sets completed_at, FAILED sets failed_at.
        The caller commits.
        """
        now = datetime.now(UTC)
        values: dict = {"status": status, "error": error}
        if status == TranslationJobStatus.COMPLETED:
            values["completed_at"] = now
        elif status == TranslationJobStatus.FAILED:
            values["failed_at"] = now
        else:
            raise ValueError(f"{status} is not a terminal job status.")

        await db.execute(update(self.model).where(self.model.id == job_id).values(**values))
        logger.info(f"Job {job_id} marked {status.value}.")

    async def set_celery_task_id(self, db: AsyncSession, *, job_id: UUID, task_id: str) -> None:
        await db.execute(
            update(self.model).where(self.model.id == job_id).values(celery_task_id=task_id)
        )


translation_job = CRUDTranslationJob(TranslationJob)
