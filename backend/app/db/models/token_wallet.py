# backend/app/db/models/token_wallet.py
import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.db.models.resource import ResourceType, resource_type_enum
from app.db.models.translation_job import TranslationEngine, translation_engine_enum

if TYPE_CHECKING:
    from app.db.models.shop import Shop


class TokenTransactionType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    USAGE = "USAGE"


class TokenWallet(Base):
    """
    Prepaid token balance of one shop.
    Always reconciles: total_purchased - total_used - balance == 0.
    Mutated only through app.modules.translation.services.token_ledger.
    """

    __tablename__ = "token_wallets"
    __table_args__ = (CheckConstraint("balance >= 0", name="balance_non_negative"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shops.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    shop: Mapped["Shop"] = relationship("app.db.models.shop.Shop", back_populates="wallet")

    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_purchased: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<TokenWallet(shop_id={self.shop_id}, balance={self.balance}, "
            f"purchased={self.total_purchased}, used={self.total_used})>"
        )


class TokenTransaction(Base):
    """Append-only ledger entry. balance_after == balance_before + amount."""

    __tablename__ = "token_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("token_wallets.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[TokenTransactionType] = mapped_column(
        SQLAlchemyEnum(
            TokenTransactionType,
            name="token_transaction_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    # Signed: positive for PURCHASE, negative for USAGE
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    engine: Mapped[TranslationEngine | None] = mapped_column(translation_engine_enum, nullable=True)
    resource_type: Mapped[ResourceType | None] = mapped_column(resource_type_enum, nullable=True)
    resource_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # Billing provider charge id for purchases
    charge_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount_paid: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<TokenTransaction(type='{self.type.value}', amount={self.amount}, "
            f"{self.balance_before}->{self.balance_after})>"
        )
