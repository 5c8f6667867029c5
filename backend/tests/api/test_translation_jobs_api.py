import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.models.resource import ResourceTranslationStatus
from app.db.models.translation_job import TranslationJob, TranslationJobStatus
from tests.factories import ResourceFactory, ShopFactory, TranslationJobFactory

API_PREFIX = settings.API_V1_STR


async def _shop_and_resource(db_session: AsyncSession):
    shop = ShopFactory.add_to(db_session)
    resource = ResourceFactory.add_to(db_session, shop_id=shop.id)
    await db_session.commit()
    return shop, resource


@pytest.mark.asyncio
async def test_create_translation_job_enqueues_descriptor(
    test_client: AsyncClient, db_session: AsyncSession, mock_send_task: MagicMock
) -> None:
    shop, resource = await _shop_and_resource(db_session)
    job_in = {
        "shopId": str(shop.id),
        "resourceId": str(resource.id),
        "targetLanguageCodes": ["FR", "de", "fr", " "],
        "engine": "OPENAI",
    }

    response = await test_client.post(f"{API_PREFIX}/translation-jobs", json=job_in)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["target_language_codes"] == ["fr", "de"]
    assert data["celery_task_id"] == data["id"]

    mock_send_task.assert_called_once()
    kwargs = mock_send_task.call_args.kwargs
    assert kwargs["name"] == settings.CELERY_TRANSLATION_TASK_NAME
    assert kwargs["task_id"] == data["id"]
    assert kwargs["args"] == [
        {
            "job_id": data["id"],
            "shop_id": str(shop.id),
            "resource_id": str(resource.id),
            "target_language_codes": ["fr", "de"],
            "engine": "OPENAI",
        }
    ]

    db_job = await db_session.get(TranslationJob, uuid.UUID(data["id"]))
    assert db_job is not None
    assert db_job.resource_id == resource.id


@pytest.mark.asyncio
async def test_create_translation_job_defaults_to_google(
    test_client: AsyncClient, db_session: AsyncSession
) -> None:
    shop, resource = await _shop_and_resource(db_session)
    job_in = {
        "shop_id": str(shop.id),
        "resource_id": str(resource.id),
        "target_language_codes": ["es"],
    }

    response = await test_client.post(f"{API_PREFIX}/translation-jobs", json=job_in)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["engine"] == "GOOGLE"


@pytest.mark.asyncio
async def test_create_translation_job_for_foreign_resource_is_404(
    test_client: AsyncClient, db_session: AsyncSession, mock_send_task: MagicMock
) -> None:
    _, resource = await _shop_and_resource(db_session)
    other_shop = ShopFactory.add_to(db_session)
    await db_session.commit()
    job_in = {
        "shopId": str(other_shop.id),
        "resourceId": str(resource.id),
        "targetLanguageCodes": ["fr"],
    }

    response = await test_client.post(f"{API_PREFIX}/translation-jobs", json=job_in)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "RESOURCE_NOT_FOUND"
    mock_send_task.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("codes", [[], ["", "  "]])
async def test_create_translation_job_requires_languages(
    test_client: AsyncClient, db_session: AsyncSession, codes: list[str]
) -> None:
    shop, resource = await _shop_and_resource(db_session)
    job_in = {"shopId": str(shop.id), "resourceId": str(resource.id), "targetLanguageCodes": codes}

    response = await test_client.post(f"{API_PREFIX}/translation-jobs", json=job_in)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_enqueue_failure_marks_job_failed(
    test_client: AsyncClient, db_session: AsyncSession, mock_send_task: MagicMock
) -> None:
    shop, resource = await _shop_and_resource(db_session)
    mock_send_task.side_effect = ConnectionError("broker unreachable")
    job_in = {"shopId": str(shop.id), "resourceId": str(resource.id), "targetLanguageCodes": ["fr"]}

    response = await test_client.post(f"{API_PREFIX}/translation-jobs", json=job_in)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["detail"] == "JOB_ENQUEUE_FAILED_NOW_MARKED_AS_FAILED_IN_DB"

    jobs = (
        (
            await db_session.execute(
                select(TranslationJob).where(TranslationJob.resource_id == resource.id)
            )
        )
        .scalars()
        .all()
    )
    assert len(jobs) == 1
    assert jobs[0].status == TranslationJobStatus.FAILED
    assert "broker unreachable" in jobs[0].error
    assert jobs[0].failed_at is not None


@pytest.mark.asyncio
async def test_get_translation_job(test_client: AsyncClient, db_session: AsyncSession) -> None:
    shop, resource = await _shop_and_resource(db_session)
    job = TranslationJobFactory.add_to(
        db_session, shop_id=shop.id, resource_id=resource.id, target_language_codes=["fr", "it"]
    )
    await db_session.commit()

    response = await test_client.get(f"{API_PREFIX}/translation-jobs/{job.id}")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == str(job.id)
    assert data["target_language_codes"] == ["fr", "it"]
    assert data["engine"] == "OPENAI"


@pytest.mark.asyncio
async def test_get_unknown_translation_job_is_404(test_client: AsyncClient) -> None:
    response = await test_client.get(f"{API_PREFIX}/translation-jobs/{uuid.uuid4()}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "TRANSLATION_JOB_NOT_FOUND"


@pytest.mark.asyncio
async def test_get_translation_job_progress(
    test_client: AsyncClient, db_session: AsyncSession
) -> None:
    shop, resource = await _shop_and_resource(db_session)
    job = TranslationJobFactory.add_to(
        db_session,
        shop_id=shop.id,
        resource_id=resource.id,
        status=TranslationJobStatus.PROCESSING,
        total_fields=4,
        processed_fields=1,
        progress=25,
    )
    await db_session.commit()

    response = await test_client.get(f"{API_PREFIX}/translation-jobs/{job.id}/progress")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "PROCESSING"
    assert data["progress"] == 25
    assert (data["processed_fields"], data["total_fields"]) == (1, 4)


@pytest.mark.asyncio
async def test_progress_of_unknown_job_is_404(test_client: AsyncClient) -> None:
    response = await test_client.get(f"{API_PREFIX}/translation-jobs/{uuid.uuid4()}/progress")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "TRANSLATION_JOB_NOT_FOUND"


@pytest.mark.asyncio
async def test_resource_translation_status(
    test_client: AsyncClient, db_session: AsyncSession
) -> None:
    shop = ShopFactory.add_to(db_session)
    resource = ResourceFactory.add_to(
        db_session,
        shop_id=shop.id,
        translation_status=ResourceTranslationStatus.PARTIALLY_COMPLETED,
        translated_count=1,
        total_languages=3,
    )
    await db_session.commit()

    response = await test_client.get(f"{API_PREFIX}/resources/{resource.id}/translation-status")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "resource_id": str(resource.id),
        "translation_status": "PARTIALLY_COMPLETED",
        "translated_count": 1,
        "total_languages": 3,
    }

    missing = await test_client.get(f"{API_PREFIX}/resources/{uuid.uuid4()}/translation-status")
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json()["detail"] == "RESOURCE_NOT_FOUND"
