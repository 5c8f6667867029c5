# backend/tests/factories/__init__.py

from .translation_factories import (
    GlossaryRuleFactory,
    LanguageFactory,
    ResourceFactory,
    ResourceFieldFactory,
    ShopFactory,
    TokenWalletFactory,
    TranslationFactory,
    TranslationJobFactory,
)

__all__ = [
    "GlossaryRuleFactory",
    "LanguageFactory",
    "ResourceFactory",
    "ResourceFieldFactory",
    "ShopFactory",
    "TokenWalletFactory",
    "TranslationFactory",
    "TranslationJobFactory",
]
