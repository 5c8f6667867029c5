# backend/app/crud/crud_resource.py
import logging
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.db.models.resource import Resource, ResourceField, ResourceTranslationStatus

logger = logging.getLogger(__name__)


class CRUDResource(CRUDBase[Resource, BaseModel, BaseModel]):
    async def get_fields(self, db: AsyncSession, *, resource_id: UUID) -> list[ResourceField]:
        """Fields of a resource in stored order."""
        result = await db.execute(
            select(ResourceField)
            .where(ResourceField.resource_id == resource_id)
            .order_by(ResourceField.position, ResourceField.field_name)
        )
        return list(result.scalars().all())

    async def update_rollup(
        self,
        db: AsyncSession,
        *,
        resource_id: UUID,
        translation_status: ResourceTranslationStatus,
        translated_count: int,
        total_languages: int,
    ) -> None:
        """Persist the resource-level translation summary. The caller commits."""
        await db.execute(
            update(self.model)
            .where(self.model.id == resource_id)
            .values(
                translation_status=translation_status,
                translated_count=translated_count,
                total_languages=total_languages,
            )
        )
        logger.debug(
            f"Resource {resource_id} rollup: {translation_status.value} "
            f"({translated_count} translated, {total_languages} languages)."
        )


resource = CRUDResource(Resource)
