# backend/app/crud/crud_token_transaction.py
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.db.models.token_wallet import TokenTransaction, TokenWallet


class CRUDTokenTransaction(CRUDBase[TokenTransaction, BaseModel, BaseModel]):
    async def get_multi_by_shop(
        self,
        db: AsyncSession,
        *,
        shop_id: UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> list[TokenTransaction]:
        """Transaction history of a shop's wallet, newest first."""
        stmt = (
            select(self.model)
            .join(TokenWallet, TokenWallet.id == self.model.wallet_id)
            .where(TokenWallet.shop_id == shop_id)
            .order_by(desc(self.model.created_at), desc(self.model.balance_after))
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


token_transaction = CRUDTokenTransaction(TokenTransaction)
