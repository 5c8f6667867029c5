# backend/app/modules/translation/engines/generative.py
import logging
import math

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from app.db.models.translation_job import TranslationEngine
from app.exceptions import ConfigurationError, TransientEngineError, TranslationEngineError
from app.modules.translation.core.constants import language_display_name
from app.modules.translation.engines.base import EngineResult, TranslationEngineAdapter

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = (
    "You are a professional translator. Translate the following text to {language}. "
    "Preserve HTML tags, formatting, and maintain the original tone and style. "
    "Only output the translated text without any explanations."
)


def estimate_tokens(text: str, chars_per_token: int = 4) -> int:
    """Rough token count for providers that do not report usage: ceil(len / chars_per_token)."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


class GenerativeEngine(TranslationEngineAdapter):
    """
    Chat-completion backed translation through LiteLLM.

    Metered: the cost is the provider's reported total_tokens when
    `reports_usage` is set and usage is present, otherwise an estimate over
    input plus output characters.
    """

    metered = True
    provider_prefix: str
    reports_usage: bool = True

    def __init__(
        self,
        model: str,
        api_key: str | None,
        temperature: float = 0.3,
        timeout_s: float | None = None,
        chars_per_token: int = 4,
    ):
        self.model = model
        self._api_key = api_key
        self._temperature = temperature
        self._timeout_s = timeout_s
        self._chars_per_token = chars_per_token
        # Ensure the provider prefix for LiteLLM routing
        if model.startswith(f"{self.provider_prefix}/"):
            self._litellm_model = model
        else:
            self._litellm_model = f"{self.provider_prefix}/{model}"

    def build_messages(self, text: str, target_language: str) -> list[dict[str, str]]:
        return [
            {
                "role": "system",
                "content": SYSTEM_PROMPT_TEMPLATE.format(
                    language=language_display_name(target_language)
                ),
            },
            {"role": "user", "content": text},
        ]

    def _cost(self, text: str, translated: str, response) -> int:
        if self.reports_usage:
            usage = getattr(response, "usage", None)
            total_tokens = getattr(usage, "total_tokens", None) if usage else None
            if total_tokens:
                return int(total_tokens)
            logger.debug(f"{self.engine.value}: usage missing from response, estimating tokens.")
        return estimate_tokens(text + translated, self._chars_per_token)

    async def _translate(
        self, text: str, target_language: str, source_language: str | None
    ) -> EngineResult:
        if not self._api_key:
            raise ConfigurationError(f"{self.engine.value} API key is not configured.")

        try:
            response = await acompletion(
                model=self._litellm_model,
                messages=self.build_messages(text, target_language),
                temperature=self._temperature,
                api_key=self._api_key,
                timeout=self._timeout_s,
            )
        except (AuthenticationError, NotFoundError) as e:
            raise ConfigurationError(f"{self.engine.value} rejected the request: {e}") from e
        except (
            APIConnectionError,
            Timeout,
            RateLimitError,
            ServiceUnavailableError,
            InternalServerError,
        ) as e:
            raise TransientEngineError(
                f"{self.engine.value} call failed ({type(e).__name__}): {e}"
            ) from e
        except (BadRequestError, APIError) as e:
            raise TranslationEngineError(
                f"{self.engine.value} call failed ({type(e).__name__}): {e}"
            ) from e

        content = None
        if response.choices:
            content = response.choices[0].message.content
        translated = (content or "").strip()
        if not translated:
            raise TransientEngineError(f"{self.engine.value} returned an empty completion.")

        return EngineResult(
            translated_text=translated, cost_units=self._cost(text, translated, response)
        )


class OpenAIEngine(GenerativeEngine):
    engine = TranslationEngine.OPENAI
    provider_prefix = "openai"
    reports_usage = True


class GeminiEngine(GenerativeEngine):
    # Cost is always estimated for Gemini
    engine = TranslationEngine.GEMINI
    provider_prefix = "gemini"
    reports_usage = False
