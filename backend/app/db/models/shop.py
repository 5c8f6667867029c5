# backend/app/db/models/shop.py
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.db.models.glossary import GlossaryRule
    from app.db.models.resource import Resource
    from app.db.models.token_wallet import TokenWallet


class Shop(Base):
    """A tenant. Owns resources, glossary rules and exactly one token wallet."""

    __tablename__ = "shops"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_domain: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    resources: Mapped[list["Resource"]] = relationship(
        "app.db.models.resource.Resource", back_populates="shop", cascade="all, delete-orphan"
    )
    glossary_rules: Mapped[list["GlossaryRule"]] = relationship(
        "app.db.models.glossary.GlossaryRule", back_populates="shop", cascade="all, delete-orphan"
    )
    wallet: Mapped["TokenWallet | None"] = relationship(
        "app.db.models.token_wallet.TokenWallet", back_populates="shop", uselist=False
    )

    def __repr__(self) -> str:
        return f"<Shop(id={self.id}, domain='{self.shop_domain}')>"
