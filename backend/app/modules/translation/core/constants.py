# backend/app/modules/translation/core/constants.py
"""Static data shared by the translation engines, the seeding script and the orchestrator."""

# (code, English name, native name, right-to-left)
SUPPORTED_LANGUAGES: list[tuple[str, str, str, bool]] = [
    ("en", "English", "English", False),
    ("vi", "Vietnamese", "Tiếng Việt", False),
    ("ja", "Japanese", "日本語", False),
    ("fr", "French", "Français", False),
    ("es", "Spanish", "Español", False),
    ("de", "German", "Deutsch", False),
    ("it", "Italian", "Italiano", False),
    ("pt", "Portuguese", "Português", False),
    ("zh", "Chinese", "中文", False),
    ("ko", "Korean", "한국어", False),
    ("ar", "Arabic", "العربية", True),
    ("th", "Thai", "ไทย", False),
    ("nl", "Dutch", "Nederlands", False),
    ("pl", "Polish", "Polski", False),
    ("ru", "Russian", "Русский", False),
]

LANGUAGE_NAMES: dict[str, str] = {code: name for code, name, _, _ in SUPPORTED_LANGUAGES}


def language_display_name(code: str) -> str:
    """English name for a language code, or the code itself when unknown."""
    return LANGUAGE_NAMES.get(code.lower(), code)


# Redis Pub/Sub channel carrying per-cell progress of a job
PROGRESS_CHANNEL_TEMPLATE = "translation_job:{job_id}:progress"
