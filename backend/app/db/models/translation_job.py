# backend/app/db/models/translation_job.py
import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base


class TranslationEngine(str, enum.Enum):
    DEEPL = "DEEPL"
    GOOGLE = "GOOGLE"
    OPENAI = "OPENAI"
    GEMINI = "GEMINI"


class TranslationJobStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_JOB_STATUSES = frozenset({TranslationJobStatus.COMPLETED, TranslationJobStatus.FAILED})

translation_engine_enum = SQLAlchemyEnum(
    TranslationEngine,
    name="translation_engine_enum",
    values_callable=lambda obj: [e.value for e in obj],
)


class TranslationJob(Base):
    __tablename__ = "translation_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shops.id", ondelete="CASCADE"), index=True, nullable=False
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("resources.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # Ordered list of language codes, e.g. ["fr", "de"]
    target_language_codes: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    engine: Mapped[TranslationEngine] = mapped_column(translation_engine_enum, nullable=False)

    status: Mapped[TranslationJobStatus] = mapped_column(
        SQLAlchemyEnum(
            TranslationJobStatus,
            name="translation_job_status_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=TranslationJobStatus.PENDING,
        nullable=False,
        index=True,
    )

    total_fields: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_fields: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_fields: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # floor(processed_fields / total_fields * 100)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    celery_task_id: Mapped[str | None] = mapped_column(
        String(255), index=True, unique=True, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<TranslationJob(id={self.id}, status='{self.status.value}', "
            f"progress={self.processed_fields}/{self.total_fields})>"
        )
