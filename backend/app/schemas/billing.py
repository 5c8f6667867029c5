# backend/app/schemas/billing.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.db.models.resource import ResourceType
from app.db.models.token_wallet import TokenTransactionType
from app.db.models.translation_job import TranslationEngine


class LedgerMetadata(BaseModel):
    """Optional context recorded on a ledger transaction."""

    description: str | None = Field(default=None, max_length=512)
    engine: TranslationEngine | None = None
    resource_type: ResourceType | None = None
    resource_id: uuid.UUID | None = None
    charge_ref: str | None = Field(default=None, max_length=255)
    amount_paid: Decimal | None = None


class TokenCreditRequest(BaseModel):
    shop_id: uuid.UUID
    amount: int = Field(gt=0, description="Tokens to add to the wallet")
    charge_ref: str | None = Field(
        default=None, max_length=255, description="Billing provider charge id"
    )
    amount_paid: Decimal | None = Field(default=None, ge=0, description="Amount paid in USD")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WalletBalance(BaseModel):
    shop_id: uuid.UUID
    balance: int


class WalletRead(BaseModel):
    id: uuid.UUID
    shop_id: uuid.UUID
    balance: int
    total_purchased: int
    total_used: int

    model_config = ConfigDict(from_attributes=True)


class TokenTransactionRead(BaseModel):
    id: uuid.UUID
    wallet_id: uuid.UUID
    type: TokenTransactionType
    amount: int
    balance_before: int
    balance_after: int
    description: str | None = None
    engine: TranslationEngine | None = None
    resource_type: ResourceType | None = None
    resource_id: uuid.UUID | None = None
    charge_ref: str | None = None
    amount_paid: Decimal | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletReconciliation(BaseModel):
    shop_id: uuid.UUID
    balance: int
    total_purchased: int
    total_used: int
    replayed_balance: int
    transaction_count: int
    is_consistent: bool
