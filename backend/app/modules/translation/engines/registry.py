# backend/app/modules/translation/engines/registry.py
import logging

from app.core.config import Settings, settings
from app.db.models.translation_job import TranslationEngine
from app.exceptions import UnsupportedEngineError
from app.modules.translation.engines.base import EngineResult, TranslationEngineAdapter
from app.modules.translation.engines.deepl_engine import DeepLEngine
from app.modules.translation.engines.generative import GeminiEngine, OpenAIEngine
from app.modules.translation.engines.google_engine import GoogleTranslateEngine

logger = logging.getLogger(__name__)


class EngineRegistry:
    """Maps engine identifiers to adapters. New engines register here, nowhere else."""

    def __init__(self, adapters: list[TranslationEngineAdapter] | None = None):
        self._adapters: dict[TranslationEngine, TranslationEngineAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: TranslationEngineAdapter) -> None:
        if adapter.engine in self._adapters:
            logger.warning(f"Replacing registered adapter for engine {adapter.engine.value}.")
        self._adapters[adapter.engine] = adapter

    def get(self, engine: TranslationEngine) -> TranslationEngineAdapter:
        try:
            return self._adapters[TranslationEngine(engine)]
        except (KeyError, ValueError) as e:
            raise UnsupportedEngineError(f"No adapter registered for engine '{engine}'.") from e

    def __contains__(self, engine: object) -> bool:
        return engine in self._adapters

    async def translate(
        self,
        engine: TranslationEngine,
        text: str,
        target_language: str,
        source_language: str | None = None,
    ) -> EngineResult:
        adapter = self.get(engine)
        return await adapter.translate(text, target_language, source_language)


def build_default_registry(app_settings: Settings = settings) -> EngineRegistry:
    """
    Registers every engine. Unprovisioned engines are still registered and
    raise ConfigurationError when called.
    """
    return EngineRegistry(
        [
            DeepLEngine(api_key=app_settings.DEEPL_API_KEY),
            GoogleTranslateEngine(
                project_id=app_settings.GOOGLE_PROJECT_ID,
                credentials_path=app_settings.GOOGLE_CREDENTIALS_PATH,
            ),
            OpenAIEngine(
                model=app_settings.OPENAI_MODEL,
                api_key=app_settings.OPENAI_API_KEY,
                temperature=app_settings.GENERATIVE_TEMPERATURE,
                timeout_s=app_settings.ENGINE_CALL_TIMEOUT_S,
                chars_per_token=app_settings.TOKEN_ESTIMATE_CHARS_PER_TOKEN,
            ),
            GeminiEngine(
                model=app_settings.GEMINI_MODEL,
                api_key=app_settings.GEMINI_API_KEY,
                temperature=app_settings.GENERATIVE_TEMPERATURE,
                timeout_s=app_settings.ENGINE_CALL_TIMEOUT_S,
                chars_per_token=app_settings.TOKEN_ESTIMATE_CHARS_PER_TOKEN,
            ),
        ]
    )
