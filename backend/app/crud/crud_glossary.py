# backend/app/crud/crud_glossary.py
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.db.models.glossary import GlossaryRule


class CRUDGlossaryRule(CRUDBase[GlossaryRule, BaseModel, BaseModel]):
    async def get_active_for_shop(self, db: AsyncSession, *, shop_id: UUID) -> list[GlossaryRule]:
        """Active rules of a shop in creation order (the order they are applied in)."""
        result = await db.execute(
            select(self.model)
            .where(self.model.shop_id == shop_id, self.model.is_active.is_(True))
            .order_by(self.model.created_at, self.model.id)
        )
        return list(result.scalars().all())


glossary_rule = CRUDGlossaryRule(GlossaryRule)
