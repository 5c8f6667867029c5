# backend/app/modules/translation/core/glossary.py
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app import crud
from app.db.models.glossary import GlossaryRuleType
from app.schemas.glossary import GlossaryRuleData

logger = logging.getLogger(__name__)


class GlossaryPreprocessor:
    """
    Applies a shop's glossary to source text before it is sent to an engine.

    CUSTOM_TRANSLATION rules replace every literal occurrence of the term, in list
    order, so each rule sees the output of the previous one.

    DO_NOT_TRANSLATE rules are accepted but never alter the text. Protecting a term
    from the engine needs engine-specific markup (e.g. a notranslate span or a
    DeepL glossary) which no adapter provides yet.
    """

    @staticmethod
    def apply(text: str, rules: Sequence[GlossaryRuleData]) -> str:
        result = text
        for rule in rules:
            if rule.rule != GlossaryRuleType.CUSTOM_TRANSLATION:
                continue
            if not rule.term or rule.translation is None:
                continue
            flags = 0 if rule.case_sensitive else re.IGNORECASE
            replacement = rule.translation
            # Literal match; the replacement is inserted verbatim (no backreferences)
            result = re.sub(re.escape(rule.term), lambda _m: replacement, result, flags=flags)
        return result


class GlossaryProvider(ABC):
    @abstractmethod
    async def get_active_rules(self, shop_id: UUID) -> list[GlossaryRuleData]:
        """Snapshot of the shop's active rules, in application order."""
        raise NotImplementedError


class DatabaseGlossaryProvider(GlossaryProvider):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_active_rules(self, shop_id: UUID) -> list[GlossaryRuleData]:
        async with self._session_factory() as session:
            rules = await crud.glossary_rule.get_active_for_shop(session, shop_id=shop_id)
            snapshot = [GlossaryRuleData.model_validate(rule) for rule in rules]
        logger.debug(f"Loaded {len(snapshot)} active glossary rules for shop {shop_id}.")
        return snapshot
