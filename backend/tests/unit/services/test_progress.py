import json
import uuid
from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.translation_job import TranslationJobStatus
from app.exceptions import JobNotFoundError, ResourceNotFoundError
from app.modules.translation.services import progress as progress_module
from app.modules.translation.services.progress import (
    RedisProgressPublisher,
    get_progress,
    get_resource_status,
)
from tests.factories import ResourceFactory, ShopFactory, TranslationJobFactory

TEST_JOB_ID = uuid.UUID("123e4567-e89b-12d3-a456-426614174000")


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    client = AsyncMock(spec=aioredis.Redis)
    client.publish = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_publish_sends_typed_message_on_job_channel(mock_redis_client: AsyncMock) -> None:
    publisher = RedisProgressPublisher(mock_redis_client)

    await publisher.publish(TEST_JOB_ID, "progress", {"processed_fields": 3, "progress": 50})

    channel, raw_message = mock_redis_client.publish.await_args.args
    assert channel == f"translation_job:{TEST_JOB_ID}:progress"
    message = json.loads(raw_message)
    assert message["type"] == "progress"
    assert message["payload"]["processed_fields"] == 3
    assert message["payload"]["progress"] == 50
    assert "ts" in message["payload"]


@pytest.mark.asyncio
async def test_publish_failure_is_logged_not_raised(mock_redis_client: AsyncMock) -> None:
    mock_redis_client.publish.side_effect = aioredis.ConnectionError("redis down")
    publisher = RedisProgressPublisher(mock_redis_client)

    await publisher.publish(TEST_JOB_ID, "status", {"status": "PROCESSING"})

    mock_redis_client.publish.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_swallows_redis_errors(mock_redis_client: AsyncMock) -> None:
    mock_redis_client.aclose.side_effect = aioredis.ConnectionError("already gone")
    await RedisProgressPublisher(mock_redis_client).close()
    mock_redis_client.aclose.assert_awaited_once()


def test_from_settings_disabled_returns_none() -> None:
    with patch.object(progress_module.settings, "PUBLISH_PROGRESS_EVENTS", False):
        assert RedisProgressPublisher.from_settings() is None


@pytest.mark.asyncio
async def test_get_progress_reads_job_counters(db_session: AsyncSession) -> None:
    shop = ShopFactory.add_to(db_session)
    resource = ResourceFactory.add_to(db_session, shop_id=shop.id)
    job = TranslationJobFactory.add_to(
        db_session,
        shop_id=shop.id,
        resource_id=resource.id,
        status=TranslationJobStatus.PROCESSING,
        total_fields=8,
        processed_fields=3,
        failed_fields=1,
        progress=37,
    )
    await db_session.commit()

    snapshot = await get_progress(db_session, job.id)

    assert snapshot.job_id == job.id
    assert snapshot.status == TranslationJobStatus.PROCESSING
    assert (snapshot.total_fields, snapshot.processed_fields, snapshot.failed_fields) == (8, 3, 1)
    assert snapshot.progress == 37


@pytest.mark.asyncio
async def test_get_progress_unknown_job_raises(db_session: AsyncSession) -> None:
    with pytest.raises(JobNotFoundError):
        await get_progress(db_session, uuid.uuid4())


@pytest.mark.asyncio
async def test_get_resource_status(db_session: AsyncSession) -> None:
    shop = ShopFactory.add_to(db_session)
    resource = ResourceFactory.add_to(db_session, shop_id=shop.id, total_languages=2)
    await db_session.commit()

    status = await get_resource_status(db_session, resource.id)
    assert status.resource_id == resource.id
    assert status.total_languages == 2

    with pytest.raises(ResourceNotFoundError):
        await get_resource_status(db_session, uuid.uuid4())
