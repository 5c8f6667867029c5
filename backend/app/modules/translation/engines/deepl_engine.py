# backend/app/modules/translation/engines/deepl_engine.py
import asyncio
import logging

import deepl

from app.db.models.translation_job import TranslationEngine
from app.exceptions import ConfigurationError, TransientEngineError
from app.modules.translation.engines.base import EngineResult, TranslationEngineAdapter

logger = logging.getLogger(__name__)

# DeepL rejects the bare codes for these targets
_DEEPL_TARGET_OVERRIDES = {"EN": "EN-US", "PT": "PT-PT"}


def to_deepl_target(code: str) -> str:
    upper = code.upper()
    return _DEEPL_TARGET_OVERRIDES.get(upper, upper)


def to_deepl_source(code: str | None) -> str | None:
    # Source languages take the base code only (EN, PT, ...)
    if not code:
        return None
    return code.split("-")[0].upper()


class DeepLEngine(TranslationEngineAdapter):
    """Lexicon/rule-based slot. Unmetered: DeepL bills characters on its own account."""

    engine = TranslationEngine.DEEPL
    metered = False

    def __init__(self, api_key: str | None):
        self._api_key = api_key
        self._translator: deepl.Translator | None = None

    def _get_translator(self) -> deepl.Translator:
        if not self._api_key:
            raise ConfigurationError("DeepL API key is not configured.")
        if self._translator is None:
            self._translator = deepl.Translator(self._api_key)
            logger.debug("DeepL translator client created.")
        return self._translator

    async def _translate(
        self, text: str, target_language: str, source_language: str | None
    ) -> EngineResult:
        translator = self._get_translator()
        target = to_deepl_target(target_language)
        try:
            # The client is synchronous; keep the event loop free
            result = await asyncio.to_thread(
                translator.translate_text,
                text,
                source_lang=to_deepl_source(source_language),
                target_lang=target,
                tag_handling="html",
            )
        except deepl.AuthorizationException as e:
            raise ConfigurationError(f"DeepL rejected the API key: {e}") from e
        except deepl.DeepLException as e:
            raise TransientEngineError(f"DeepL request failed ({type(e).__name__}): {e}") from e

        translated = getattr(result, "text", None)
        if translated is None:
            raise TransientEngineError(f"DeepL returned no translation for target {target}.")
        return EngineResult(translated_text=translated, cost_units=0)
