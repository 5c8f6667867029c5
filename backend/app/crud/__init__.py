# backend/app/crud/__init__.py
"""
CRUD operations package for the application.
This module re-exports the CRUD operations from the underlying modules.
"""

from .crud_glossary import glossary_rule
from .crud_language import language
from .crud_resource import resource
from .crud_shop import shop
from .crud_token_transaction import token_transaction
from .crud_translation import translation
from .crud_translation_job import translation_job

__all__ = [
    "glossary_rule",
    "language",
    "resource",
    "shop",
    "token_transaction",
    "translation",
    "translation_job",
]
