import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.db.models.resource import ResourceTranslationStatus
from app.db.models.translation_job import TranslationEngine, TranslationJobStatus
from app.exceptions import JobNotFoundError, LedgerIntegrityError
from app.modules.translation.core.orchestrator import JobOutcome
from app.schemas.translation_job import JobDescriptor
from app.tasks import translation_jobs

TEST_JOB_ID = uuid.UUID("123e4567-e89b-12d3-a456-426614174000")
TEST_SHOP_ID = uuid.UUID("223e4567-e89b-12d3-a456-426614174000")
TEST_RESOURCE_ID = uuid.UUID("323e4567-e89b-12d3-a456-426614174000")
LOG_PREFIX = "[test]"


def _descriptor_payload(**overrides) -> dict:
    payload = {
        "job_id": str(TEST_JOB_ID),
        "shop_id": str(TEST_SHOP_ID),
        "resource_id": str(TEST_RESOURCE_ID),
        "target_language_codes": ["fr", "de"],
        "engine": TranslationEngine.OPENAI.value,
    }
    payload.update(overrides)
    return payload


def _outcome(**overrides) -> JobOutcome:
    values = {
        "job_id": TEST_JOB_ID,
        "status": TranslationJobStatus.COMPLETED,
        "total_fields": 4,
        "processed_fields": 4,
        "tokens_used": 40,
        "progress": 100,
        "resource_status": ResourceTranslationStatus.COMPLETED,
    }
    values.update(overrides)
    return JobOutcome(**values)


# --- Result mapping ---


def test_outcome_to_result_is_json_friendly() -> None:
    result = translation_jobs._outcome_to_result(
        _outcome(unknown_language_codes=["xx"], resource_status=None)
    )
    assert result == {
        "job_id": str(TEST_JOB_ID),
        "status": "COMPLETED",
        "total_fields": 4,
        "processed_fields": 4,
        "failed_fields": 0,
        "skipped_fields": 0,
        "tokens_used": 40,
        "progress": 100,
        "resource_status": None,
        "unknown_language_codes": ["xx"],
    }


# --- Async logic ---


@pytest.mark.asyncio
async def test_async_logic_runs_orchestrator_and_closes_publisher() -> None:
    publisher = MagicMock()
    publisher.close = AsyncMock()
    orchestrator = MagicMock()
    orchestrator.run = AsyncMock(return_value=_outcome())
    session_factory = MagicMock()

    with (
        patch.object(
            translation_jobs.RedisProgressPublisher, "from_settings", return_value=publisher
        ),
        patch.object(
            translation_jobs, "get_worker_session_factory", return_value=session_factory
        ),
        patch.object(translation_jobs, "ServiceContainer") as container_cls,
    ):
        container_cls.return_value.build_orchestrator.return_value = orchestrator
        descriptor = JobDescriptor.model_validate(_descriptor_payload())

        result = await translation_jobs._execute_translation_job_async_logic(
            descriptor, LOG_PREFIX
        )

    container_cls.assert_called_once_with(session_factory, progress_publisher=publisher)
    orchestrator.run.assert_awaited_once_with(TEST_JOB_ID)
    publisher.close.assert_awaited_once()
    assert result["status"] == "COMPLETED"
    assert result["resource_status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_async_logic_closes_publisher_when_run_fails() -> None:
    publisher = MagicMock()
    publisher.close = AsyncMock()

    with (
        patch.object(
            translation_jobs.RedisProgressPublisher, "from_settings", return_value=publisher
        ),
        patch.object(translation_jobs, "get_worker_session_factory", return_value=MagicMock()),
        patch.object(translation_jobs, "ServiceContainer") as container_cls,
    ):
        container_cls.return_value.build_orchestrator.return_value.run = AsyncMock(
            side_effect=LedgerIntegrityError("wallet unreconciled")
        )
        descriptor = JobDescriptor.model_validate(_descriptor_payload())

        with pytest.raises(LedgerIntegrityError):
            await translation_jobs._execute_translation_job_async_logic(descriptor, LOG_PREFIX)

    publisher.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_logic_without_progress_publisher() -> None:
    with (
        patch.object(translation_jobs.RedisProgressPublisher, "from_settings", return_value=None),
        patch.object(translation_jobs, "get_worker_session_factory", return_value=MagicMock()),
        patch.object(translation_jobs, "ServiceContainer") as container_cls,
    ):
        container_cls.return_value.build_orchestrator.return_value.run = AsyncMock(
            return_value=_outcome(status=TranslationJobStatus.FAILED, failed_fields=1)
        )
        descriptor = JobDescriptor.model_validate(_descriptor_payload())

        result = await translation_jobs._execute_translation_job_async_logic(
            descriptor, LOG_PREFIX
        )

    assert result["status"] == "FAILED"
    assert result["failed_fields"] == 1


# --- Celery task wrapper (called directly, no broker) ---


def test_task_returns_result_of_async_logic() -> None:
    expected = translation_jobs._outcome_to_result(_outcome())
    with patch.object(
        translation_jobs,
        "_execute_translation_job_async_logic",
        new=AsyncMock(return_value=expected),
    ) as mock_logic:
        result = translation_jobs.execute_translation_job_task(_descriptor_payload())

    assert result == expected
    descriptor = mock_logic.await_args.args[0]
    assert isinstance(descriptor, JobDescriptor)
    assert descriptor.job_id == TEST_JOB_ID
    assert descriptor.target_language_codes == ["fr", "de"]


def test_task_accepts_camel_case_descriptor() -> None:
    payload = {
        "jobId": str(TEST_JOB_ID),
        "shopId": str(TEST_SHOP_ID),
        "resourceId": str(TEST_RESOURCE_ID),
        "targetLanguageCodes": ["FR"],
        "engine": "DEEPL",
    }
    expected = translation_jobs._outcome_to_result(_outcome())
    with patch.object(
        translation_jobs,
        "_execute_translation_job_async_logic",
        new=AsyncMock(return_value=expected),
    ) as mock_logic:
        translation_jobs.execute_translation_job_task(payload)

    descriptor = mock_logic.await_args.args[0]
    assert descriptor.engine == TranslationEngine.DEEPL
    assert descriptor.target_language_codes == ["fr"]


@pytest.mark.parametrize(
    "payload",
    [
        _descriptor_payload(job_id="not-a-uuid"),
        _descriptor_payload(target_language_codes=[]),
        _descriptor_payload(engine="BABELFISH"),
    ],
)
def test_task_rejects_invalid_descriptor(payload: dict) -> None:
    with patch.object(
        translation_jobs, "_execute_translation_job_async_logic", new=AsyncMock()
    ) as mock_logic:
        with pytest.raises(ValueError, match="Invalid job descriptor"):
            translation_jobs.execute_translation_job_task(payload)
    mock_logic.assert_not_called()


@pytest.mark.parametrize(
    "error",
    [LedgerIntegrityError("ledger down"), JobNotFoundError("job vanished")],
)
def test_task_reraises_fatal_errors(error: Exception) -> None:
    with patch.object(
        translation_jobs,
        "_execute_translation_job_async_logic",
        new=AsyncMock(side_effect=error),
    ):
        with pytest.raises(type(error)):
            translation_jobs.execute_translation_job_task(_descriptor_payload())


def test_task_is_registered_under_configured_name() -> None:
    task_name = translation_jobs.settings.CELERY_TRANSLATION_TASK_NAME
    assert translation_jobs.execute_translation_job_task.name == task_name
    assert task_name in translation_jobs.celery_app.tasks
