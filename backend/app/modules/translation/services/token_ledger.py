# backend/app/modules/translation/services/token_ledger.py
import logging
import uuid
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.crud.base import dialect_insert
from app.db.models.token_wallet import TokenTransaction, TokenTransactionType, TokenWallet
from app.exceptions import InsufficientTokensError, LedgerIntegrityError
from app.schemas.billing import LedgerMetadata, WalletReconciliation

logger = logging.getLogger(__name__)

_RETURNED_COLUMNS = (
    TokenWallet.id,
    TokenWallet.balance,
    TokenWallet.total_purchased,
    TokenWallet.total_used,
)


class TokenLedger:
    """
    Per-shop prepaid token accounting.

    Every debit and credit is a single transaction made of one conditional
    UPDATE ... RETURNING on the wallet row plus one TokenTransaction insert.
    A debit can also join a caller's transaction (see `debit(session=...)`).
    Balances are never read first and written later, so concurrent jobs of the
    same shop cannot overdraw the wallet or lose an update.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def debit(
        self,
        shop_id: UUID,
        amount: int,
        metadata: LedgerMetadata | None = None,
        *,
        session: AsyncSession | None = None,
    ) -> TokenTransaction:
        """
        Take `amount` tokens from the shop's wallet.

        Raises InsufficientTokensError (nothing written) when the balance is too
        low or the shop has no wallet, LedgerIntegrityError on database failure.

        With `session`, the wallet update and the log entry join the caller's open
        transaction, so they commit or roll back together with whatever else the
        caller writes in it. The caller owns the commit.
        """
        if amount <= 0:
            raise ValueError(f"Debit amount must be positive, got {amount}.")

        if session is not None:
            entry = await self._debit_in_session(session, shop_id, amount, metadata)
            logger.debug(
                f"[Ledger shop={shop_id}] Debit of {amount} tokens staged in caller transaction. "
                f"Balance {entry.balance_before} -> {entry.balance_after}."
            )
            return entry

        try:
            async with self._session_factory() as own_session:
                async with own_session.begin():
                    entry = await self._debit_in_session(own_session, shop_id, amount, metadata)
        except SQLAlchemyError as e:
            # Commit failures surface here, outside the statement-level handler
            logger.error(f"[Ledger shop={shop_id}] Debit of {amount} failed on commit: {e}")
            raise LedgerIntegrityError(f"Debit of {amount} for shop {shop_id} failed: {e}") from e

        logger.info(
            f"[Ledger shop={shop_id}] Debited {amount} tokens. "
            f"Balance {entry.balance_before} -> {entry.balance_after}."
        )
        return entry

    async def _debit_in_session(
        self,
        session: AsyncSession,
        shop_id: UUID,
        amount: int,
        metadata: LedgerMetadata | None,
    ) -> TokenTransaction:
        try:
            result = await session.execute(
                update(TokenWallet)
                .where(TokenWallet.shop_id == shop_id, TokenWallet.balance >= amount)
                .values(
                    balance=TokenWallet.balance - amount,
                    total_used=TokenWallet.total_used + amount,
                    updated_at=func.now(),
                )
                .returning(*_RETURNED_COLUMNS)
                .execution_options(synchronize_session=False)
            )
            row = result.first()
            if row is None:
                available = await self._current_balance(session, shop_id)
                raise InsufficientTokensError(
                    required=amount, available=available, shop_id=shop_id
                )
            self._ensure_reconciled(shop_id, row)

            entry = self._build_entry(
                wallet_id=row.id,
                tx_type=TokenTransactionType.USAGE,
                amount=-amount,
                balance_after=row.balance,
                metadata=metadata,
            )
            session.add(entry)
            await session.flush()
        except SQLAlchemyError as e:
            logger.error(f"[Ledger shop={shop_id}] Debit of {amount} failed: {e}")
            raise LedgerIntegrityError(f"Debit of {amount} for shop {shop_id} failed: {e}") from e
        return entry

    async def credit(
        self, shop_id: UUID, amount: int, metadata: LedgerMetadata | None = None
    ) -> TokenTransaction:
        """
        Add `amount` purchased tokens to the shop's wallet, creating the wallet on
        the first purchase.
        """
        if amount <= 0:
            raise ValueError(f"Credit amount must be positive, got {amount}.")

        async with self._session_factory() as session:
            try:
                async with session.begin():
                    row = await self._increment(session, shop_id, amount)
                    if row is None:
                        # First purchase for this shop
                        insert = dialect_insert(session)
                        await session.execute(
                            insert(TokenWallet)
                            .values(
                                id=uuid.uuid4(),
                                shop_id=shop_id,
                                balance=0,
                                total_purchased=0,
                                total_used=0,
                            )
                            .on_conflict_do_nothing(index_elements=["shop_id"])
                        )
                        row = await self._increment(session, shop_id, amount)
                    if row is None:
                        raise LedgerIntegrityError(
                            f"Wallet for shop {shop_id} could not be created or updated."
                        )
                    self._ensure_reconciled(shop_id, row)

                    entry = self._build_entry(
                        wallet_id=row.id,
                        tx_type=TokenTransactionType.PURCHASE,
                        amount=amount,
                        balance_after=row.balance,
                        metadata=metadata,
                    )
                    session.add(entry)
            except LedgerIntegrityError:
                raise
            except SQLAlchemyError as e:
                logger.error(f"[Ledger shop={shop_id}] Credit of {amount} failed: {e}")
                raise LedgerIntegrityError(
                    f"Credit of {amount} for shop {shop_id} failed: {e}"
                ) from e

        logger.info(
            f"[Ledger shop={shop_id}] Credited {amount} tokens. "
            f"Balance {entry.balance_before} -> {entry.balance_after}."
        )
        return entry

    async def get_balance(self, shop_id: UUID) -> int:
        """Point read for display. Debits never consult it."""
        async with self._session_factory() as session:
            return await self._current_balance(session, shop_id)

    async def get_wallet(self, shop_id: UUID) -> TokenWallet | None:
        async with self._session_factory() as session:
            result = await session.execute(select(TokenWallet).where(TokenWallet.shop_id == shop_id))
            return result.scalars().first()

    async def verify_wallet(self, shop_id: UUID) -> WalletReconciliation | None:
        """
        Replay the shop's transaction log against the wallet row.
        Returns None when the shop has no wallet.
        """
        async with self._session_factory() as session:
            wallet = (
                await session.execute(select(TokenWallet).where(TokenWallet.shop_id == shop_id))
            ).scalars().first()
            if wallet is None:
                return None
            transactions = list(
                (
                    await session.execute(
                        select(TokenTransaction).where(TokenTransaction.wallet_id == wallet.id)
                    )
                )
                .scalars()
                .all()
            )

        replayed_balance = 0
        purchased = 0
        used = 0
        consistent = True
        for tx in transactions:
            if tx.balance_after != tx.balance_before + tx.amount:
                logger.error(f"[Ledger shop={shop_id}] Transaction {tx.id} does not add up: {tx!r}")
                consistent = False
            replayed_balance += tx.amount
            if tx.type == TokenTransactionType.PURCHASE:
                purchased += tx.amount
            else:
                used -= tx.amount

        consistent = (
            consistent
            and replayed_balance == wallet.balance
            and purchased == wallet.total_purchased
            and used == wallet.total_used
            and wallet.total_purchased - wallet.total_used - wallet.balance == 0
        )
        if not consistent:
            logger.error(
                f"[Ledger shop={shop_id}] Wallet does not reconcile: {wallet!r}, "
                f"replayed balance {replayed_balance}, purchased {purchased}, used {used}."
            )

        return WalletReconciliation(
            shop_id=shop_id,
            balance=wallet.balance,
            total_purchased=wallet.total_purchased,
            total_used=wallet.total_used,
            replayed_balance=replayed_balance,
            transaction_count=len(transactions),
            is_consistent=consistent,
        )

    @staticmethod
    async def _increment(session: AsyncSession, shop_id: UUID, amount: int):
        result = await session.execute(
            update(TokenWallet)
            .where(TokenWallet.shop_id == shop_id)
            .values(
                balance=TokenWallet.balance + amount,
                total_purchased=TokenWallet.total_purchased + amount,
                updated_at=func.now(),
            )
            .returning(*_RETURNED_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        return result.first()

    @staticmethod
    async def _current_balance(session: AsyncSession, shop_id: UUID) -> int:
        result = await session.execute(
            select(TokenWallet.balance).where(TokenWallet.shop_id == shop_id)
        )
        balance = result.scalar_one_or_none()
        return int(balance) if balance is not None else 0

    @staticmethod
    def _ensure_reconciled(shop_id: UUID, row) -> None:
        if row.total_purchased - row.total_used - row.balance != 0 or row.balance < 0:
            raise LedgerIntegrityError(
                f"Wallet {row.id} of shop {shop_id} does not reconcile after update: "
                f"purchased={row.total_purchased} used={row.total_used} balance={row.balance}."
            )

    @staticmethod
    def _build_entry(
        *,
        wallet_id: UUID,
        tx_type: TokenTransactionType,
        amount: int,
        balance_after: int,
        metadata: LedgerMetadata | None,
    ) -> TokenTransaction:
        meta = metadata or LedgerMetadata()
        return TokenTransaction(
            wallet_id=wallet_id,
            type=tx_type,
            amount=amount,
            balance_before=balance_after - amount,
            balance_after=balance_after,
            description=meta.description,
            engine=meta.engine,
            resource_type=meta.resource_type,
            resource_id=meta.resource_id,
            charge_ref=meta.charge_ref,
            amount_paid=meta.amount_paid,
        )
