# backend/app/crud/crud_language.py
from collections.abc import Iterable

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.db.models.language import Language


class CRUDLanguage(CRUDBase[Language, BaseModel, BaseModel]):
    async def get_map_by_codes(
        self, db: AsyncSession, *, codes: Iterable[str]
    ) -> dict[str, Language]:
        """
        Resolve language codes to active Language rows.
        Unknown or inactive codes are simply absent from the result.
        """
        wanted = list(dict.fromkeys(codes))
        if not wanted:
            return {}
        result = await db.execute(
            select(self.model).where(self.model.code.in_(wanted), self.model.is_active.is_(True))
        )
        return {language.code: language for language in result.scalars().all()}


language = CRUDLanguage(Language)
