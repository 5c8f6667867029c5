# backend/app/modules/translation/services/progress.py
import json
import logging
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud
from app.core.config import settings
from app.exceptions import JobNotFoundError, ResourceNotFoundError
from app.modules.translation.core.constants import PROGRESS_CHANNEL_TEMPLATE
from app.schemas.translation_job import JobProgress, ResourceTranslationStatusRead

logger = logging.getLogger(__name__)


async def get_progress(db: AsyncSession, job_id: UUID) -> JobProgress:
    job = await crud.translation_job.get(db, id=job_id)
    if job is None:
        raise JobNotFoundError(f"Translation job {job_id} not found.")
    return JobProgress(
        job_id=job.id,
        status=job.status,
        total_fields=job.total_fields,
        processed_fields=job.processed_fields,
        failed_fields=job.failed_fields,
        progress=job.progress,
        error=job.error,
        started_at=job.started_at,
        completed_at=job.completed_at,
        failed_at=job.failed_at,
    )


async def get_resource_status(db: AsyncSession, resource_id: UUID) -> ResourceTranslationStatusRead:
    resource = await crud.resource.get(db, id=resource_id)
    if resource is None:
        raise ResourceNotFoundError(f"Resource {resource_id} not found.")
    return ResourceTranslationStatusRead(
        resource_id=resource.id,
        translation_status=resource.translation_status,
        translated_count=resource.translated_count,
        total_languages=resource.total_languages,
    )


class RedisProgressPublisher:
    """
    Best-effort progress events on a per-job Redis Pub/Sub channel.
    Publish failures are logged and never interrupt the job.
    """

    def __init__(self, redis_client: aioredis.Redis):
        self._redis = redis_client

    @classmethod
    def from_settings(cls) -> "RedisProgressPublisher | None":
        if not settings.PUBLISH_PROGRESS_EVENTS or not settings.REDIS_PUBSUB_URL:
            return None
        return cls(aioredis.from_url(str(settings.REDIS_PUBSUB_URL), decode_responses=True))

    async def publish(
        self,
        job_id: UUID,
        message_type: Literal["status", "progress"],
        payload: dict,
        log_prefix: str = "",
    ) -> None:
        channel = PROGRESS_CHANNEL_TEMPLATE.format(job_id=job_id)
        payload = {**payload, "ts": datetime.now(UTC).isoformat()}
        try:
            await self._redis.publish(channel, json.dumps({"type": message_type, "payload": payload}))
            if message_type == "status":
                logger.info(
                    f"{log_prefix} Published STATUS to '{channel}': {payload.get('status', 'N/A')}"
                )
        except aioredis.RedisError as e:
            logger.error(
                f"{log_prefix} Redis Pub/Sub publish error to channel '{channel}': {e}",
                exc_info=settings.LOG_TRACEBACKS,
            )

    async def close(self) -> None:
        try:
            await self._redis.aclose()
        except aioredis.RedisError as e:
            logger.warning(f"Error closing Redis progress publisher: {e}")
