# backend/app/modules/translation/core/orchestrator.py
import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app import crud
from app.core.config import settings
from app.db.models.language import Language
from app.db.models.resource import ResourceTranslationStatus, ResourceType
from app.db.models.translation_job import (
    TERMINAL_JOB_STATUSES,
    TranslationEngine,
    TranslationJobStatus,
)
from app.exceptions import (
    FatalOrchestrationError,
    JobNotFoundError,
    LedgerIntegrityError,
    ResourceNotFoundError,
)
from app.modules.translation.core.glossary import GlossaryPreprocessor, GlossaryProvider
from app.modules.translation.engines.registry import EngineRegistry
from app.modules.translation.services.progress import RedisProgressPublisher
from app.modules.translation.services.token_ledger import TokenLedger
from app.schemas.billing import LedgerMetadata
from app.schemas.glossary import GlossaryRuleData

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CellResult(str, enum.Enum):
    SKIPPED = "SKIPPED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class FieldSnapshot:
    id: UUID
    field_name: str
    original_value: str


@dataclass(frozen=True)
class JobSnapshot:
    """Everything a run needs, read once so no session stays open during the matrix."""

    job_id: UUID
    shop_id: UUID
    resource_id: UUID
    resource_type: ResourceType
    engine: TranslationEngine
    language_codes: list[str]
    fields: list[FieldSnapshot]
    languages: dict[str, int]  # code -> Language.id, resolved codes only
    previous_status: TranslationJobStatus


@dataclass
class JobOutcome:
    job_id: UUID
    status: TranslationJobStatus
    total_fields: int
    processed_fields: int = 0
    failed_fields: int = 0
    skipped_fields: int = 0
    tokens_used: int = 0
    progress: int = 0
    resource_status: ResourceTranslationStatus | None = None
    unknown_language_codes: list[str] = field(default_factory=list)


def compute_progress(processed: int, total: int) -> int:
    """floor(processed / total * 100); an empty matrix counts as done."""
    if total <= 0:
        return 100
    return (processed * 100) // total


class TranslationOrchestrator:
    """
    Runs one translation job: expands the field x language matrix, skips cells
    that are already final, translates the rest and rolls the result up to the job
    and the resource.

    `run` is safe to call repeatedly for the same job. Cells are processed one at a
    time, fields outer and languages inner, in stored order. Every database, engine
    and ledger call is bounded by a timeout and no transaction is held open across
    an engine call. A cell's debit and its translation row commit together.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: TokenLedger,
        glossary_provider: GlossaryProvider,
        engine_registry: EngineRegistry,
        progress_publisher: RedisProgressPublisher | None = None,
        *,
        cell_delay_s: float | None = None,
        engine_timeout_s: float | None = None,
        ledger_timeout_s: float | None = None,
        db_timeout_s: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._session_factory = session_factory
        self._ledger = ledger
        self._glossary_provider = glossary_provider
        self._engines = engine_registry
        self._publisher = progress_publisher
        self._cell_delay_s = (
            cell_delay_s if cell_delay_s is not None else settings.TRANSLATION_CELL_DELAY_MS / 1000
        )
        self._engine_timeout_s = (
            engine_timeout_s if engine_timeout_s is not None else settings.ENGINE_CALL_TIMEOUT_S
        )
        self._ledger_timeout_s = (
            ledger_timeout_s if ledger_timeout_s is not None else settings.LEDGER_CALL_TIMEOUT_S
        )
        self._db_timeout_s = (
            db_timeout_s if db_timeout_s is not None else settings.DB_OPERATION_TIMEOUT_S
        )
        self._sleep = sleep

    async def run(self, job_id: UUID) -> JobOutcome:
        log_prefix = f"[Orchestrator job={job_id}]"
        logger.info(f"{log_prefix} Starting run.")

        # --- Load (fatal on failure) ---
        try:
            snapshot = await self._bounded(self._load_snapshot(job_id), self._db_timeout_s)
            if snapshot.previous_status in TERMINAL_JOB_STATUSES:
                logger.warning(
                    f"{log_prefix} Job is already {snapshot.previous_status.value}; re-running matrix."
                )
            total_fields = len(snapshot.fields) * len(snapshot.language_codes)
            await self._bounded(self._start_job(job_id, total_fields), self._db_timeout_s)
            rules = await self._bounded(
                self._glossary_provider.get_active_rules(snapshot.shop_id), self._db_timeout_s
            )
        except FatalOrchestrationError as e:
            await self._fail_job(job_id, str(e), log_prefix)
            raise
        except (SQLAlchemyError, TimeoutError) as e:
            message = f"Failed to load job {job_id}: {type(e).__name__}: {e}"
            await self._fail_job(job_id, message, log_prefix)
            raise FatalOrchestrationError(message) from e

        outcome = JobOutcome(
            job_id=job_id,
            status=TranslationJobStatus.PROCESSING,
            total_fields=total_fields,
            unknown_language_codes=[
                code for code in snapshot.language_codes if code not in snapshot.languages
            ],
        )
        if outcome.unknown_language_codes:
            logger.warning(
                f"{log_prefix} Unknown language codes {outcome.unknown_language_codes}; "
                f"their cells will be counted as failed."
            )
        logger.info(
            f"{log_prefix} {len(snapshot.fields)} fields x {len(snapshot.language_codes)} languages "
            f"= {total_fields} cells, engine {snapshot.engine.value}, {len(rules)} glossary rules."
        )
        await self._publish(
            job_id, "status", {"status": TranslationJobStatus.PROCESSING.value}, log_prefix
        )

        # --- Matrix ---
        engine_called = False
        try:
            for resource_field in snapshot.fields:
                for code in snapshot.language_codes:
                    language_id = snapshot.languages.get(code)
                    if language_id is None:
                        result, tokens = CellResult.FAILED, 0
                    else:
                        result, tokens, dispatched = await self._process_cell(
                            snapshot,
                            resource_field,
                            code,
                            language_id,
                            rules,
                            log_prefix,
                            throttle=engine_called,
                        )
                        engine_called = engine_called or dispatched

                    if result == CellResult.FAILED:
                        outcome.failed_fields += 1
                    else:
                        outcome.processed_fields += 1
                        if result == CellResult.SKIPPED:
                            outcome.skipped_fields += 1
                    outcome.tokens_used += tokens
                    outcome.progress = compute_progress(outcome.processed_fields, total_fields)
                    await self._save_counters(job_id, outcome, log_prefix)
        except LedgerIntegrityError as e:
            await self._fail_job(job_id, f"Ledger integrity error: {e}", log_prefix)
            raise

        # --- Terminal status ---
        outcome.progress = compute_progress(outcome.processed_fields, total_fields)
        if outcome.failed_fields == 0:
            outcome.status = TranslationJobStatus.COMPLETED
            error = None
        else:
            outcome.status = TranslationJobStatus.FAILED
            error = f"{outcome.failed_fields} of {total_fields} translations failed."
        outcome.resource_status = await self._finish(snapshot, outcome, error, log_prefix)

        logger.info(
            f"{log_prefix} Finished {outcome.status.value}: processed={outcome.processed_fields} "
            f"(skipped={outcome.skipped_fields}) failed={outcome.failed_fields} "
            f"tokens={outcome.tokens_used}."
        )
        await self._publish(
            job_id,
            "status",
            {
                "status": outcome.status.value,
                "processed_fields": outcome.processed_fields,
                "failed_fields": outcome.failed_fields,
                "total_fields": total_fields,
            },
            log_prefix,
        )
        return outcome

    async def _process_cell(
        self,
        snapshot: JobSnapshot,
        resource_field: FieldSnapshot,
        code: str,
        language_id: int,
        rules: list[GlossaryRuleData],
        log_prefix: str,
        throttle: bool = False,
    ) -> tuple[CellResult, int, bool]:
        """Returns (result, tokens debited, whether the engine was called)."""
        cell = f"{log_prefix} [field={resource_field.field_name} lang={code}]"
        dispatched = False
        try:
            if await self._bounded(
                self._is_final(snapshot.resource_id, resource_field.id, language_id),
                self._db_timeout_s,
            ):
                logger.debug(f"{cell} Already translated, skipping.")
                return CellResult.SKIPPED, 0, False

            text = GlossaryPreprocessor.apply(resource_field.original_value, rules)
            if throttle and self._cell_delay_s > 0:
                await self._sleep(self._cell_delay_s)
            dispatched = True
            result = await self._bounded(
                self._engines.translate(snapshot.engine, text, code), self._engine_timeout_s
            )

            cost = result.cost_units
            await self._bounded(
                self._commit_cell(
                    snapshot, resource_field, code, language_id, result.translated_text, cost
                ),
                self._ledger_timeout_s + self._db_timeout_s,
            )
            logger.debug(f"{cell} Translated ({cost} tokens).")
            return CellResult.COMPLETED, cost, dispatched
        except LedgerIntegrityError:
            raise
        except Exception as e:
            logger.warning(
                f"{cell} Cell failed: {type(e).__name__}: {e}",
                exc_info=settings.LOG_TRACEBACKS,
            )
            await self._record_failed_cell(snapshot, resource_field.id, language_id, cell)
            return CellResult.FAILED, 0, dispatched

    async def _bounded(self, awaitable: Awaitable[T], timeout_s: float) -> T:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)

    async def _load_snapshot(self, job_id: UUID) -> JobSnapshot:
        async with self._session_factory() as session:
            job = await crud.translation_job.get(session, id=job_id)
            if job is None:
                raise JobNotFoundError(f"Translation job {job_id} not found.")
            resource = await crud.resource.get(session, id=job.resource_id)
            if resource is None:
                raise ResourceNotFoundError(
                    f"Resource {job.resource_id} of job {job_id} not found."
                )
            fields = await crud.resource.get_fields(session, resource_id=resource.id)
            codes = list(job.target_language_codes or [])
            languages: dict[str, Language] = await crud.language.get_map_by_codes(
                session, codes=codes
            )
            return JobSnapshot(
                job_id=job.id,
                shop_id=job.shop_id,
                resource_id=resource.id,
                resource_type=resource.resource_type,
                engine=job.engine,
                language_codes=codes,
                fields=[
                    FieldSnapshot(id=f.id, field_name=f.field_name, original_value=f.original_value)
                    for f in fields
                ],
                languages={code: language.id for code, language in languages.items()},
                previous_status=job.status,
            )

    async def _start_job(self, job_id: UUID, total_fields: int) -> None:
        async with self._session_factory() as session:
            await crud.translation_job.mark_processing(
                session, job_id=job_id, total_fields=total_fields
            )
            await session.commit()

    async def _is_final(self, resource_id: UUID, field_id: UUID, language_id: int) -> bool:
        async with self._session_factory() as session:
            existing = await crud.translation.get_by_key(
                session, resource_id=resource_id, field_id=field_id, language_id=language_id
            )
            return existing is not None and existing.is_final

    async def _commit_cell(
        self,
        snapshot: JobSnapshot,
        resource_field: FieldSnapshot,
        code: str,
        language_id: int,
        translated_text: str,
        cost: int,
    ) -> None:
        # Debit and translation row commit together or not at all
        async with self._session_factory() as session:
            async with session.begin():
                if cost > 0:
                    await self._bounded(
                        self._ledger.debit(
                            snapshot.shop_id,
                            cost,
                            LedgerMetadata(
                                description=(
                                    f"Translation of {resource_field.field_name} to {code} "
                                    f"({snapshot.engine.value})"
                                ),
                                engine=snapshot.engine,
                                resource_type=snapshot.resource_type,
                                resource_id=snapshot.resource_id,
                            ),
                            session=session,
                        ),
                        self._ledger_timeout_s,
                    )
                await self._bounded(
                    crud.translation.upsert_completed(
                        session,
                        resource_id=snapshot.resource_id,
                        field_id=resource_field.id,
                        language_id=language_id,
                        translated_value=translated_text,
                        engine=snapshot.engine,
                        tokens_used=cost,
                    ),
                    self._db_timeout_s,
                )

    async def _record_failed_cell(
        self, snapshot: JobSnapshot, field_id: UUID, language_id: int, cell: str
    ) -> None:
        try:
            async with self._session_factory() as session:
                await self._bounded(
                    crud.translation.upsert_failed(
                        session,
                        resource_id=snapshot.resource_id,
                        field_id=field_id,
                        language_id=language_id,
                        engine=snapshot.engine,
                    ),
                    self._db_timeout_s,
                )
                await session.commit()
        except (SQLAlchemyError, TimeoutError) as e:
            # The failure is still counted on the job
            logger.error(f"{cell} Could not record failed translation row: {e}")

    async def _save_counters(self, job_id: UUID, outcome: JobOutcome, log_prefix: str) -> None:
        async def _write() -> None:
            async with self._session_factory() as session:
                await crud.translation_job.save_counters(
                    session,
                    job_id=job_id,
                    processed_fields=outcome.processed_fields,
                    failed_fields=outcome.failed_fields,
                    progress=outcome.progress,
                )
                await session.commit()

        try:
            await self._bounded(_write(), self._db_timeout_s)
        except (SQLAlchemyError, TimeoutError) as e:
            # Counters are rewritten after the next cell and at the end of the run
            logger.error(f"{log_prefix} Failed to persist progress counters: {e}")
        await self._publish(
            job_id,
            "progress",
            {
                "processed_fields": outcome.processed_fields,
                "failed_fields": outcome.failed_fields,
                "total_fields": outcome.total_fields,
                "progress": outcome.progress,
            },
            log_prefix,
        )

    async def _finish(
        self,
        snapshot: JobSnapshot,
        outcome: JobOutcome,
        error: str | None,
        log_prefix: str,
    ) -> ResourceTranslationStatus:
        async def _write() -> ResourceTranslationStatus:
            async with self._session_factory() as session:
                await crud.translation_job.save_counters(
                    session,
                    job_id=snapshot.job_id,
                    processed_fields=outcome.processed_fields,
                    failed_fields=outcome.failed_fields,
                    progress=outcome.progress,
                )
                await crud.translation_job.mark_terminal(
                    session, job_id=snapshot.job_id, status=outcome.status, error=error
                )

                # Compared against this job's matrix size only
                completed = await crud.translation.count_completed_for_resource(
                    session, resource_id=snapshot.resource_id
                )
                resource_status = (
                    ResourceTranslationStatus.COMPLETED
                    if completed == outcome.total_fields
                    else ResourceTranslationStatus.PARTIALLY_COMPLETED
                )
                await crud.resource.update_rollup(
                    session,
                    resource_id=snapshot.resource_id,
                    translation_status=resource_status,
                    translated_count=completed,
                    total_languages=len(snapshot.language_codes),
                )
                await session.commit()
                return resource_status

        try:
            return await self._bounded(_write(), self._db_timeout_s)
        except (SQLAlchemyError, TimeoutError) as e:
            message = f"Failed to finalize job {snapshot.job_id}: {type(e).__name__}: {e}"
            await self._fail_job(snapshot.job_id, message, log_prefix)
            raise FatalOrchestrationError(message) from e

    async def _fail_job(self, job_id: UUID, message: str, log_prefix: str) -> None:
        """Mark the job FAILED with a trimmed error. Never raises."""
        logger.error(f"{log_prefix} Fatal: {message}")
        trimmed = message[: settings.JOB_ERROR_MESSAGE_MAX_LEN]
        try:
            async with self._session_factory() as session:
                await self._bounded(
                    crud.translation_job.mark_terminal(
                        session,
                        job_id=job_id,
                        status=TranslationJobStatus.FAILED,
                        error=trimmed,
                    ),
                    self._db_timeout_s,
                )
                await session.commit()
        except (SQLAlchemyError, TimeoutError) as e:
            logger.error(f"{log_prefix} Could not mark job FAILED: {e}")
        await self._publish(
            job_id,
            "status",
            {"status": TranslationJobStatus.FAILED.value, "error": trimmed},
            log_prefix,
        )

    async def _publish(
        self,
        job_id: UUID,
        message_type: Literal["status", "progress"],
        payload: dict,
        log_prefix: str,
    ) -> None:
        if self._publisher is not None:
            await self._publisher.publish(job_id, message_type, payload, log_prefix)
