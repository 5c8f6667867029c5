# backend/app/modules/translation/engines/google_engine.py
import asyncio
import logging
import re

from google.api_core import exceptions as google_exceptions
from google.cloud import translate_v3 as google_translate

from app.db.models.translation_job import TranslationEngine
from app.exceptions import ConfigurationError, TransientEngineError
from app.modules.translation.engines.base import EngineResult, TranslationEngineAdapter

logger = logging.getLogger(__name__)

_PARENT_PATTERN = re.compile(r"projects/([^/]+)(?:/locations/([^/]+))?")


def build_google_parent(project_config: str) -> str:
    """
    Accepts either a bare project id or a 'projects/ID[/locations/LOC]' path
    and returns the API parent string.
    """
    match = _PARENT_PATTERN.match(project_config)
    if match:
        project_id, location = match.group(1), match.group(2) or "global"
    else:
        project_id, location = project_config, "global"
    if not re.fullmatch(r"[a-z0-9][a-z0-9-]*[a-z0-9]", project_id.lower()):
        raise ConfigurationError(f"Google project id '{project_id}' appears invalid.")
    return f"projects/{project_id}/locations/{location}"


class GoogleTranslateEngine(TranslationEngineAdapter):
    """Statistical/phrase-based slot (Cloud Translation v3). Unmetered."""

    engine = TranslationEngine.GOOGLE
    metered = False

    def __init__(
        self,
        project_id: str | None,
        credentials_path: str | None,
        client: google_translate.TranslationServiceClient | None = None,
    ):
        self._project_id = project_id
        self._credentials_path = credentials_path
        self._client = client
        self._parent: str | None = None

    def _get_client(self) -> tuple[google_translate.TranslationServiceClient, str]:
        if not self._project_id or not self._credentials_path:
            raise ConfigurationError(
                "Google Translate is not configured (missing project id or credentials path)."
            )
        if self._parent is None:
            self._parent = build_google_parent(self._project_id)
        if self._client is None:
            try:
                self._client = google_translate.TranslationServiceClient.from_service_account_file(
                    self._credentials_path
                )
            except (OSError, ValueError) as e:
                raise ConfigurationError(
                    f"Google credentials could not be loaded from '{self._credentials_path}': {e}"
                ) from e
            logger.info(f"Google Translate client initialized. API Parent: {self._parent}")
        return self._client, self._parent

    async def _translate(
        self, text: str, target_language: str, source_language: str | None
    ) -> EngineResult:
        client, parent = self._get_client()
        request = google_translate.TranslateTextRequest(
            parent=parent,
            contents=[text],
            mime_type="text/html",
            source_language_code=source_language or None,
            target_language_code=target_language,
        )
        try:
            response = await asyncio.to_thread(client.translate_text, request=request)
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise ConfigurationError(f"Google Translate rejected the credentials: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            raise TransientEngineError(
                f"Google Translate call failed ({type(e).__name__}): {e}"
            ) from e

        if not response or not response.translations:
            raise TransientEngineError(
                f"Google Translate returned no translations for target {target_language}."
            )
        return EngineResult(translated_text=response.translations[0].translated_text, cost_units=0)
