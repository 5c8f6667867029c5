# backend/app/db/models/glossary.py
import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.db.models.shop import Shop


class GlossaryRuleType(str, enum.Enum):
    DO_NOT_TRANSLATE = "DO_NOT_TRANSLATE"
    CUSTOM_TRANSLATION = "CUSTOM_TRANSLATION"


class GlossaryRule(Base):
    __tablename__ = "glossary_rules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shops.id", ondelete="CASCADE"), index=True, nullable=False
    )
    shop: Mapped["Shop"] = relationship("app.db.models.shop.Shop", back_populates="glossary_rules")

    term: Mapped[str] = mapped_column(String(255), nullable=False)
    translation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rule: Mapped[GlossaryRuleType] = mapped_column(
        SQLAlchemyEnum(
            GlossaryRuleType,
            name="glossary_rule_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    case_sensitive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<GlossaryRule(term='{self.term}', rule='{self.rule.value}')>"
