# backend/app/modules/translation/core/di.py
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, settings
from app.modules.translation.core.glossary import DatabaseGlossaryProvider, GlossaryProvider
from app.modules.translation.core.orchestrator import TranslationOrchestrator
from app.modules.translation.engines.registry import EngineRegistry, build_default_registry
from app.modules.translation.services.progress import RedisProgressPublisher
from app.modules.translation.services.token_ledger import TokenLedger

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Lazily builds the collaborators of the translation orchestrator around one
    session factory. Anything passed in explicitly is used as is.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        app_settings: Settings = settings,
        engine_registry: EngineRegistry | None = None,
        ledger: TokenLedger | None = None,
        glossary_provider: GlossaryProvider | None = None,
        progress_publisher: RedisProgressPublisher | None = None,
    ):
        self._session_factory = session_factory
        self._settings = app_settings
        self._engine_registry = engine_registry
        self._ledger = ledger
        self._glossary_provider = glossary_provider
        self._progress_publisher = progress_publisher
        logger.debug("ServiceContainer initialized.")

    @property
    def engine_registry(self) -> EngineRegistry:
        if self._engine_registry is None:
            self._engine_registry = build_default_registry(self._settings)
        return self._engine_registry

    @property
    def ledger(self) -> TokenLedger:
        if self._ledger is None:
            self._ledger = TokenLedger(self._session_factory)
        return self._ledger

    @property
    def glossary_provider(self) -> GlossaryProvider:
        if self._glossary_provider is None:
            self._glossary_provider = DatabaseGlossaryProvider(self._session_factory)
        return self._glossary_provider

    @property
    def progress_publisher(self) -> RedisProgressPublisher | None:
        return self._progress_publisher

    def build_orchestrator(self) -> TranslationOrchestrator:
        return TranslationOrchestrator(
            session_factory=self._session_factory,
            ledger=self.ledger,
            glossary_provider=self.glossary_provider,
            engine_registry=self.engine_registry,
            progress_publisher=self.progress_publisher,
            cell_delay_s=self._settings.TRANSLATION_CELL_DELAY_MS / 1000,
            engine_timeout_s=self._settings.ENGINE_CALL_TIMEOUT_S,
            ledger_timeout_s=self._settings.LEDGER_CALL_TIMEOUT_S,
            db_timeout_s=self._settings.DB_OPERATION_TIMEOUT_S,
        )
