# backend/app/modules/translation/engines/base.py
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.db.models.translation_job import TranslationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineResult:
    """Translated payload of one engine call and the tokens it costs (0 for unmetered engines)."""

    translated_text: str
    cost_units: int = 0


class TranslationEngineAdapter(ABC):
    """
    Uniform contract over a translation backend.

    Adapters preserve inline markup, return only the translated payload and raise
    ConfigurationError (not provisioned / rejected credentials) or
    TransientEngineError (transport failures, timeouts, empty answers).
    """

    engine: TranslationEngine
    metered: bool = False

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> EngineResult:
        # Nothing to send for blank input
        if not text.strip():
            return EngineResult(translated_text=text, cost_units=0)
        return await self._translate(text, target_language, source_language)

    @abstractmethod
    async def _translate(
        self, text: str, target_language: str, source_language: str | None
    ) -> EngineResult:
        raise NotImplementedError
