import asyncio
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.resource import ResourceType
from app.db.models.token_wallet import TokenTransaction, TokenTransactionType, TokenWallet
from app.db.models.translation_job import TranslationEngine
from app.exceptions import InsufficientTokensError, LedgerIntegrityError
from app.modules.translation.services.token_ledger import TokenLedger
from app.schemas.billing import LedgerMetadata
from tests.factories import ShopFactory, TokenWalletFactory


async def _shop_with_wallet(db: AsyncSession, balance: int) -> uuid.UUID:
    shop = ShopFactory.add_to(db)
    TokenWalletFactory.add_to(db, shop_id=shop.id, balance=balance)
    await db.commit()
    return shop.id


async def _transactions(session_factory, shop_id) -> list[TokenTransaction]:
    async with session_factory() as session:
        result = await session.execute(
            select(TokenTransaction)
            .join(TokenWallet, TokenWallet.id == TokenTransaction.wallet_id)
            .where(TokenWallet.shop_id == shop_id)
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_debit_updates_wallet_and_writes_usage_entry(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop_id = await _shop_with_wallet(db_session, balance=100)
    resource_id = uuid.uuid4()
    metadata = LedgerMetadata(
        description="Translation of title to fr (OPENAI)",
        engine=TranslationEngine.OPENAI,
        resource_type=ResourceType.PRODUCT,
        resource_id=resource_id,
    )

    entry = await ledger.debit(shop_id, 30, metadata)

    assert entry.type == TokenTransactionType.USAGE
    assert entry.amount == -30
    assert (entry.balance_before, entry.balance_after) == (100, 70)
    assert entry.engine == TranslationEngine.OPENAI
    assert entry.resource_id == resource_id
    assert await ledger.get_balance(shop_id) == 70

    wallet = await ledger.get_wallet(shop_id)
    assert wallet.total_used == 30
    assert wallet.total_purchased - wallet.total_used - wallet.balance == 0


@pytest.mark.asyncio
async def test_debit_exact_balance_reaches_zero(
    db_session: AsyncSession, ledger: TokenLedger
) -> None:
    shop_id = await _shop_with_wallet(db_session, balance=25)

    entry = await ledger.debit(shop_id, 25)

    assert entry.balance_after == 0
    assert await ledger.get_balance(shop_id) == 0


@pytest.mark.asyncio
async def test_insufficient_debit_writes_nothing(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop_id = await _shop_with_wallet(db_session, balance=5)

    with pytest.raises(InsufficientTokensError) as exc_info:
        await ledger.debit(shop_id, 10)

    assert exc_info.value.required == 10
    assert exc_info.value.available == 5
    assert await ledger.get_balance(shop_id) == 5
    assert await _transactions(session_factory, shop_id) == []


@pytest.mark.asyncio
async def test_debit_without_wallet_is_insufficient(ledger: TokenLedger) -> None:
    with pytest.raises(InsufficientTokensError) as exc_info:
        await ledger.debit(uuid.uuid4(), 1)
    assert exc_info.value.available == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5])
async def test_non_positive_amounts_are_rejected(ledger: TokenLedger, amount: int) -> None:
    with pytest.raises(ValueError):
        await ledger.debit(uuid.uuid4(), amount)
    with pytest.raises(ValueError):
        await ledger.credit(uuid.uuid4(), amount)


@pytest.mark.asyncio
async def test_concurrent_debits_never_overdraw(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop_id = await _shop_with_wallet(db_session, balance=50)

    results = await asyncio.gather(
        *(ledger.debit(shop_id, 10) for _ in range(8)), return_exceptions=True
    )

    succeeded = [r for r in results if isinstance(r, TokenTransaction)]
    refused = [r for r in results if isinstance(r, InsufficientTokensError)]
    assert len(succeeded) == 5
    assert len(refused) == 3
    assert await ledger.get_balance(shop_id) == 0

    # Every entry chains off a distinct balance
    assert sorted(entry.balance_after for entry in succeeded) == [0, 10, 20, 30, 40]
    report = await ledger.verify_wallet(shop_id)
    assert report.is_consistent


@pytest.mark.asyncio
async def test_first_credit_creates_wallet(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop = ShopFactory.add_to(db_session)
    await db_session.commit()

    entry = await ledger.credit(
        shop.id,
        500,
        LedgerMetadata(description="Purchase", charge_ref="ch_123", amount_paid=Decimal("9.99")),
    )

    assert entry.type == TokenTransactionType.PURCHASE
    assert (entry.amount, entry.balance_before, entry.balance_after) == (500, 0, 500)
    assert entry.charge_ref == "ch_123"
    wallet = await ledger.get_wallet(shop.id)
    assert (wallet.balance, wallet.total_purchased, wallet.total_used) == (500, 500, 0)


@pytest.mark.asyncio
async def test_credit_then_debit_reconciles(
    db_session: AsyncSession, ledger: TokenLedger
) -> None:
    shop = ShopFactory.add_to(db_session)
    await db_session.commit()

    await ledger.credit(shop.id, 100)
    await ledger.debit(shop.id, 40)
    await ledger.credit(shop.id, 10)

    report = await ledger.verify_wallet(shop.id)
    assert report.is_consistent
    assert report.balance == 70
    assert report.replayed_balance == 70
    assert report.total_purchased == 110
    assert report.total_used == 40
    assert report.transaction_count == 3


@pytest.mark.asyncio
async def test_verify_wallet_detects_tampered_balance(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop = ShopFactory.add_to(db_session)
    await db_session.commit()
    await ledger.credit(shop.id, 100)

    async with session_factory() as session:
        wallet = (
            await session.execute(select(TokenWallet).where(TokenWallet.shop_id == shop.id))
        ).scalars().one()
        wallet.balance = 120
        wallet.total_purchased = 120
        await session.commit()

    report = await ledger.verify_wallet(shop.id)
    assert report.is_consistent is False
    assert report.replayed_balance == 100


@pytest.mark.asyncio
async def test_verify_wallet_without_wallet_returns_none(ledger: TokenLedger) -> None:
    assert await ledger.verify_wallet(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_database_failure_becomes_ledger_integrity_error() -> None:
    transaction_cm = AsyncMock()
    transaction_cm.__aexit__.return_value = False  # do not swallow the error
    session = MagicMock()
    session.begin = MagicMock(return_value=transaction_cm)
    session.execute = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("db down")))
    session_cm = AsyncMock()
    session_cm.__aenter__.return_value = session
    session_cm.__aexit__.return_value = False
    factory = MagicMock(return_value=session_cm)

    with pytest.raises(LedgerIntegrityError):
        await TokenLedger(factory).debit(uuid.uuid4(), 10)


@pytest.mark.asyncio
async def test_debit_in_caller_transaction_rolls_back_with_it(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop_id = await _shop_with_wallet(db_session, balance=100)

    with pytest.raises(RuntimeError):
        async with session_factory() as session:
            async with session.begin():
                entry = await ledger.debit(shop_id, 40, session=session)
                assert entry.balance_after == 60
                raise RuntimeError("translation row could not be written")

    assert await ledger.get_balance(shop_id) == 100
    assert await _transactions(session_factory, shop_id) == []


@pytest.mark.asyncio
async def test_debit_in_caller_transaction_commits_with_it(
    db_session: AsyncSession, ledger: TokenLedger, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    shop_id = await _shop_with_wallet(db_session, balance=100)

    async with session_factory() as session:
        async with session.begin():
            await ledger.debit(shop_id, 40, session=session)

    assert await ledger.get_balance(shop_id) == 60
    assert [tx.amount for tx in await _transactions(session_factory, shop_id)] == [-40]
    assert (await ledger.verify_wallet(shop_id)).is_consistent is True
