# backend/app/api/routers/billing.py
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi import Path as FastApiPath
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud
from app.core.config import settings
from app.db.models.token_wallet import TokenTransaction
from app.db.session import get_async_session, get_session_factory
from app.modules.translation.services.token_ledger import TokenLedger
from app.schemas.billing import (
    LedgerMetadata,
    TokenCreditRequest,
    TokenTransactionRead,
    WalletBalance,
    WalletReconciliation,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/billing",
    tags=["Billing - Token Wallets"],
    responses={status.HTTP_404_NOT_FOUND: {"description": "Shop or wallet not found"}},
)


def get_token_ledger() -> TokenLedger:
    return TokenLedger(get_session_factory())


async def _ensure_shop_exists(db: AsyncSession, shop_id: UUID) -> None:
    if await crud.shop.get(db, id=shop_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="SHOP_NOT_FOUND")


@router.post(
    "/tokens/credit",
    response_model=TokenTransactionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Credit purchased tokens to a shop wallet",
    description=(
        "Called once a token purchase is confirmed by the billing provider. "
        "Creates the wallet on the first purchase."
    ),
)
async def credit_tokens(
    credit_in: Annotated[TokenCreditRequest, Body(...)],
    db: Annotated[AsyncSession, Depends(get_async_session)],
    ledger: Annotated[TokenLedger, Depends(get_token_ledger)],
) -> TokenTransaction:
    await _ensure_shop_exists(db, credit_in.shop_id)
    metadata = LedgerMetadata(
        description=f"Purchase of {credit_in.amount} tokens",
        charge_ref=credit_in.charge_ref,
        amount_paid=credit_in.amount_paid,
    )
    entry = await ledger.credit(credit_in.shop_id, credit_in.amount, metadata)
    logger.info(
        f"Credited {credit_in.amount} tokens to shop {credit_in.shop_id} "
        f"(charge: {credit_in.charge_ref or 'N/A'})."
    )
    return entry


@router.get(
    "/{shop_id}/balance",
    response_model=WalletBalance,
    summary="Get the token balance of a shop",
)
async def get_balance(
    shop_id: Annotated[UUID, FastApiPath(description="The ID of the shop")],
    db: Annotated[AsyncSession, Depends(get_async_session)],
    ledger: Annotated[TokenLedger, Depends(get_token_ledger)],
) -> WalletBalance:
    await _ensure_shop_exists(db, shop_id)
    return WalletBalance(shop_id=shop_id, balance=await ledger.get_balance(shop_id))


@router.get(
    "/{shop_id}/transactions",
    response_model=list[TokenTransactionRead],
    summary="List the token transactions of a shop",
    description="Transaction history of the shop's wallet, newest first.",
)
async def list_transactions(
    shop_id: Annotated[UUID, FastApiPath(description="The ID of the shop")],
    db: Annotated[AsyncSession, Depends(get_async_session)],
    skip: Annotated[int, Query(ge=0, description="Number of transactions to skip")] = 0,
    limit: Annotated[
        int,
        Query(
            ge=1,
            le=settings.DEFAULT_PAGINATION_LIMIT_MAX,
            description="Maximum number of transactions to return",
        ),
    ] = 50,
) -> list[TokenTransaction]:
    await _ensure_shop_exists(db, shop_id)
    return await crud.token_transaction.get_multi_by_shop(
        db, shop_id=shop_id, skip=skip, limit=limit
    )


@router.get(
    "/{shop_id}/reconciliation",
    response_model=WalletReconciliation,
    summary="Replay a shop's ledger against its wallet",
)
async def reconcile_wallet(
    shop_id: Annotated[UUID, FastApiPath(description="The ID of the shop")],
    ledger: Annotated[TokenLedger, Depends(get_token_ledger)],
) -> WalletReconciliation:
    report = await ledger.verify_wallet(shop_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="WALLET_NOT_FOUND")
    if not report.is_consistent:
        logger.error(f"Wallet of shop {shop_id} failed reconciliation: {report.model_dump()}")
    return report
