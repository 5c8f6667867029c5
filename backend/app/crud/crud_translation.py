# backend/app/crud/crud_translation.py
import logging
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase, dialect_insert
from app.db.models.translation import Translation, TranslationStatus
from app.db.models.translation_job import TranslationEngine

logger = logging.getLogger(__name__)

_NATURAL_KEY = ("resource_id", "field_id", "language_id")


class CRUDTranslation(CRUDBase[Translation, BaseModel, BaseModel]):
    async def get_by_key(
        self,
        db: AsyncSession,
        *,
        resource_id: UUID,
        field_id: UUID,
        language_id: int,
    ) -> Translation | None:
        result = await db.execute(
            select(self.model).where(
                self.model.resource_id == resource_id,
                self.model.field_id == field_id,
                self.model.language_id == language_id,
            )
        )
        return result.scalars().first()

    async def upsert_completed(
        self,
        db: AsyncSession,
        *,
        resource_id: UUID,
        field_id: UUID,
        language_id: int,
        translated_value: str,
        engine: TranslationEngine,
        tokens_used: int,
    ) -> None:
        """
        Create or overwrite the row for the key with a fresh machine translation.
        Clears is_manual_edit and needs_review. The caller commits.
        """
        insert = dialect_insert(db)
        stmt = insert(self.model).values(
            resource_id=resource_id,
            field_id=field_id,
            language_id=language_id,
            translated_value=translated_value,
            status=TranslationStatus.COMPLETED,
            engine=engine,
            tokens_used=tokens_used,
            is_manual_edit=False,
            needs_review=False,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_NATURAL_KEY),
            set_={
                "translated_value": stmt.excluded.translated_value,
                "status": stmt.excluded.status,
                "engine": stmt.excluded.engine,
                "tokens_used": stmt.excluded.tokens_used,
                "is_manual_edit": False,
                "needs_review": False,
                "updated_at": func.now(),
            },
        )
        await db.execute(stmt)

    async def upsert_failed(
        self,
        db: AsyncSession,
        *,
        resource_id: UUID,
        field_id: UUID,
        language_id: int,
        engine: TranslationEngine,
    ) -> None:
        """
        Record a failed cell. An existing COMPLETED row is left untouched.
        The caller commits.
        """
        insert = dialect_insert(db)
        stmt = insert(self.model).values(
            resource_id=resource_id,
            field_id=field_id,
            language_id=language_id,
            translated_value=None,
            status=TranslationStatus.FAILED,
            engine=engine,
            tokens_used=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_NATURAL_KEY),
            set_={
                "status": stmt.excluded.status,
                "engine": stmt.excluded.engine,
                "tokens_used": 0,
                "updated_at": func.now(),
            },
            where=self.model.status != TranslationStatus.COMPLETED,
        )
        await db.execute(stmt)

    async def count_completed_for_resource(self, db: AsyncSession, *, resource_id: UUID) -> int:
        result = await db.execute(
            select(func.count(self.model.id)).where(
                self.model.resource_id == resource_id,
                self.model.status == TranslationStatus.COMPLETED,
            )
        )
        return int(result.scalar_one())


translation = CRUDTranslation(Translation)
