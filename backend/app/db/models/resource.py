# backend/app/db/models/resource.py
import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.db.models.shop import Shop


class ResourceType(str, enum.Enum):
    PRODUCT = "PRODUCT"
    COLLECTION = "COLLECTION"
    PAGE = "PAGE"
    ARTICLE = "ARTICLE"
    BLOG = "BLOG"
    MENU = "MENU"
    METAFIELD = "METAFIELD"
    THEME = "THEME"


resource_type_enum = SQLAlchemyEnum(
    ResourceType,
    name="resource_type_enum",
    values_callable=lambda obj: [e.value for e in obj],
)


class ResourceTranslationStatus(str, enum.Enum):
    NOT_TRANSLATED = "NOT_TRANSLATED"
    PARTIALLY_COMPLETED = "PARTIALLY_COMPLETED"
    COMPLETED = "COMPLETED"


class Resource(Base):
    """A translatable piece of shop content, made of named fields."""

    __tablename__ = "resources"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shops.id", ondelete="CASCADE"), index=True, nullable=False
    )
    shop: Mapped["Shop"] = relationship("app.db.models.shop.Shop", back_populates="resources")

    resource_type: Mapped[ResourceType] = mapped_column(resource_type_enum, nullable=False)
    # Identifier of the resource on the commerce platform
    external_id: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)

    translation_status: Mapped[ResourceTranslationStatus] = mapped_column(
        SQLAlchemyEnum(
            ResourceTranslationStatus,
            name="resource_translation_status_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=ResourceTranslationStatus.NOT_TRANSLATED,
        nullable=False,
    )
    translated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_languages: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    fields: Mapped[list["ResourceField"]] = relationship(
        back_populates="resource",
        cascade="all, delete-orphan",
        order_by="ResourceField.position",
    )

    def __repr__(self) -> str:
        return f"<Resource(id={self.id}, type='{self.resource_type.value}', status='{self.translation_status.value}')>"


class ResourceField(Base):
    """
    One named, translatable field of a resource (title, body_html, ...).
    original_value is never written by the translation engine.
    """

    __tablename__ = "resource_fields"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    resource_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("resources.id", ondelete="CASCADE"), index=True, nullable=False
    )
    resource: Mapped["Resource"] = relationship(back_populates="fields")

    field_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_value: Mapped[str] = mapped_column(Text, nullable=False)
    # Stored order; the orchestrator iterates fields by this column
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<ResourceField(id={self.id}, name='{self.field_name}', position={self.position})>"
