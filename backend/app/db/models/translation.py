# backend/app/db/models/translation.py
import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base
from app.db.models.translation_job import TranslationEngine, translation_engine_enum


class TranslationStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Translation(Base):
    """
    The translated value of one resource field in one language.
    At most one row exists per (resource_id, field_id, language_id).
    """

    __tablename__ = "translations"
    __table_args__ = (UniqueConstraint("resource_id", "field_id", "language_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("resources.id", ondelete="CASCADE"), index=True, nullable=False
    )
    field_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("resource_fields.id", ondelete="CASCADE"), nullable=False
    )
    language_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("languages.id", ondelete="CASCADE"), nullable=False
    )

    translated_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TranslationStatus] = mapped_column(
        SQLAlchemyEnum(
            TranslationStatus,
            name="translation_status_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=TranslationStatus.PENDING,
        nullable=False,
        index=True,
    )
    engine: Mapped[TranslationEngine | None] = mapped_column(translation_engine_enum, nullable=True)
    tokens_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_manual_edit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    needs_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def is_final(self) -> bool:
        """COMPLETED and not flagged for review: automatic jobs never touch it again."""
        return self.status == TranslationStatus.COMPLETED and not self.needs_review

    def __repr__(self) -> str:
        return (
            f"<Translation(field_id={self.field_id}, language_id={self.language_id}, "
            f"status='{self.status.value}')>"
        )
