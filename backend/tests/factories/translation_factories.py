# backend/tests/factories/translation_factories.py

import uuid
from datetime import UTC, datetime
from typing import Any

import factory
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.glossary import GlossaryRule, GlossaryRuleType
from app.db.models.language import Language
from app.db.models.resource import (
    Resource,
    ResourceField,
    ResourceTranslationStatus,
    ResourceType,
)
from app.db.models.shop import Shop
from app.db.models.token_wallet import TokenWallet
from app.db.models.translation import Translation, TranslationStatus
from app.db.models.translation_job import TranslationEngine, TranslationJob, TranslationJobStatus


class _SessionBoundFactory(factory.Factory):
    """
    Base for the model factories.

    Instances are built, then added to an explicit session with `add_to`.
    Flushing/committing is left to the calling test.
    """

    class Meta:
        abstract = True

    @classmethod
    def _create(cls, model_class: type, *args: Any, **kwargs: Any):
        raise NotImplementedError("Use add_to(session, ...) with an explicit session.")

    @classmethod
    def add_to(cls, session: AsyncSession, **kwargs: Any):
        instance = cls.build(**kwargs)
        session.add(instance)
        return instance


class ShopFactory(_SessionBoundFactory):
    class Meta:
        model = Shop

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    shop_domain: str = factory.Sequence(lambda n: f"shop-{n}.example.com")
    name: str = factory.Sequence(lambda n: f"Test Shop {n}")
    is_active: bool = True


class LanguageFactory(_SessionBoundFactory):
    class Meta:
        model = Language

    code: str = factory.Sequence(lambda n: f"l{n}")
    name: str = factory.LazyAttribute(lambda o: f"Language {o.code}")
    native_name: str = factory.LazyAttribute(lambda o: o.name)
    is_rtl: bool = False
    is_active: bool = True


class ResourceFactory(_SessionBoundFactory):
    class Meta:
        model = Resource

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    shop_id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    resource_type: ResourceType = ResourceType.PRODUCT
    external_id: str = factory.Sequence(lambda n: f"gid://shop/Product/{n}")
    title: str = factory.Sequence(lambda n: f"Product {n}")
    translation_status: ResourceTranslationStatus = ResourceTranslationStatus.NOT_TRANSLATED
    translated_count: int = 0
    total_languages: int = 0


class ResourceFieldFactory(_SessionBoundFactory):
    class Meta:
        model = ResourceField

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    resource_id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    field_name: str = factory.Sequence(lambda n: f"field_{n}")
    original_value: str = "Hello world"
    position: int = factory.Sequence(lambda n: n)


class TokenWalletFactory(_SessionBoundFactory):
    """Wallets are built reconciled: total_purchased = balance + total_used."""

    class Meta:
        model = TokenWallet

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    shop_id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    balance: int = 100
    total_used: int = 0
    total_purchased: int = factory.LazyAttribute(lambda o: o.balance + o.total_used)


class TranslationJobFactory(_SessionBoundFactory):
    class Meta:
        model = TranslationJob

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    shop_id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    resource_id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    target_language_codes: list[str] = factory.LazyFunction(lambda: ["fr"])
    engine: TranslationEngine = TranslationEngine.OPENAI
    status: TranslationJobStatus = TranslationJobStatus.PENDING
    total_fields: int = 0
    processed_fields: int = 0
    failed_fields: int = 0
    progress: int = 0


class TranslationFactory(_SessionBoundFactory):
    class Meta:
        model = Translation

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    translated_value: str = "Bonjour le monde"
    status: TranslationStatus = TranslationStatus.COMPLETED
    engine: TranslationEngine = TranslationEngine.OPENAI
    tokens_used: int = 0
    is_manual_edit: bool = False
    needs_review: bool = False


class GlossaryRuleFactory(_SessionBoundFactory):
    class Meta:
        model = GlossaryRule

    id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    shop_id: uuid.UUID = factory.LazyFunction(uuid.uuid4)
    term: str = "Widget"
    translation: str = "Gadget"
    rule: GlossaryRuleType = GlossaryRuleType.CUSTOM_TRANSLATION
    case_sensitive: bool = False
    is_active: bool = True
    created_at: datetime = factory.LazyFunction(lambda: datetime.now(UTC))
