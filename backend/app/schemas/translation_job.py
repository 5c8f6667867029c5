# backend/app/schemas/translation_job.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.db.models.resource import ResourceTranslationStatus
from app.db.models.translation_job import TranslationEngine, TranslationJobStatus


def _normalize_language_codes(codes: list[str]) -> list[str]:
    # Keep caller order, drop blanks and repeats
    seen: set[str] = set()
    normalized: list[str] = []
    for code in codes:
        value = code.strip().lower()
        if value and value not in seen:
            seen.add(value)
            normalized.append(value)
    return normalized


# Message placed on the queue; the only thing the worker needs to start a run.
class JobDescriptor(BaseModel):
    job_id: uuid.UUID
    shop_id: uuid.UUID
    resource_id: uuid.UUID
    target_language_codes: list[str] = Field(min_length=1)
    engine: TranslationEngine

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("target_language_codes")
    @classmethod
    def _clean_codes(cls, v: list[str]) -> list[str]:
        return _normalize_language_codes(v)


class TranslationJobCreate(BaseModel):
    shop_id: uuid.UUID
    resource_id: uuid.UUID
    target_language_codes: list[str] = Field(
        min_length=1, description="Ordered target language codes, e.g. ['fr', 'de']"
    )
    engine: TranslationEngine = Field(default=TranslationEngine.GOOGLE)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("target_language_codes")
    @classmethod
    def _clean_codes(cls, v: list[str]) -> list[str]:
        cleaned = _normalize_language_codes(v)
        if not cleaned:
            raise ValueError("At least one non-empty target language code is required.")
        return cleaned


class TranslationJobRead(BaseModel):
    id: uuid.UUID
    shop_id: uuid.UUID
    resource_id: uuid.UUID
    target_language_codes: list[str]
    engine: TranslationEngine
    status: TranslationJobStatus
    total_fields: int
    processed_fields: int
    failed_fields: int
    progress: int
    error: str | None = None
    celery_task_id: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class JobProgress(BaseModel):
    job_id: uuid.UUID
    status: TranslationJobStatus
    total_fields: int
    processed_fields: int
    failed_fields: int
    progress: int
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None


class ResourceTranslationStatusRead(BaseModel):
    resource_id: uuid.UUID
    translation_status: ResourceTranslationStatus
    translated_count: int
    total_languages: int
