"""
Configuration for the screenshot solver.

Values come from the environment (a local .env file is loaded first). The
pipeline only ever reads configuration; the settings UI writes it elsewhere.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

from .types import ProcessingMode

# Load environment variables
load_dotenv()


# --- API constants ---
API_MAX_RETRIES = 3
API_TIMEOUT_SECONDS = 30.0
API_RETRY_DELAY_BASE = 1.0
API_RETRY_DELAY_MAX = 5.0
API_FALLBACK_COOLDOWN_SECONDS = 60.0
API_MAX_TOKENS = 8000
API_TEMPERATURE = 0.1

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_MAX_IMAGES = 5

# Available Groq models
GROQ_MODELS = {
    "maverick": "meta-llama/llama-4-maverick-17b-128e-instruct",  # Vision, primary
    "scout": "meta-llama/llama-4-scout-17b-16e-instruct",         # Vision, lighter
    "gpt_oss": "openai/gpt-oss-120b",                              # Text only, fallback
    "versatile": "llama-3.3-70b-versatile",                        # Text only
}
DEFAULT_GROQ_MODEL = GROQ_MODELS["maverick"]
FALLBACK_MODEL = GROQ_MODELS["gpt_oss"]

GEMINI_MODELS = ["gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite"]
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# Substrings that mark a model as unable to read images
TEXT_ONLY_MODEL_MARKERS = ("gpt-oss", "llama-3.3-70b-versatile")

DEFAULT_LANGUAGE = "python"

# --- Screenshot constants ---
SCREENSHOTS_MAX_QUEUE_SIZE = 5
SCREENSHOT_MAX_SIDE = 1024
SCREENSHOT_JPEG_QUALITY = 85

OCR_SEPARATOR = "\n\n---\n\n"


def is_text_only_model(model_id: str) -> bool:
    model_id = (model_id or "").lower()
    return any(marker in model_id for marker in TEXT_ONLY_MODEL_MARKERS)


def sanitize_groq_model(model: Optional[str]) -> str:
    """Restrict the Groq model to a known identifier."""
    if not model:
        return DEFAULT_GROQ_MODEL
    if model not in GROQ_MODELS.values():
        print(f"⚠️ Invalid Groq model specified: {model}. Using default model: {DEFAULT_GROQ_MODEL}")
        return DEFAULT_GROQ_MODEL
    return model


def sanitize_gemini_model(model: Optional[str]) -> str:
    """Restrict the Gemini model to a known identifier."""
    if not model:
        return DEFAULT_GEMINI_MODEL
    if model not in GEMINI_MODELS:
        print(f"⚠️ Invalid Gemini model specified: {model}. Using default model: {DEFAULT_GEMINI_MODEL}")
        return DEFAULT_GEMINI_MODEL
    return model


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    """
    Snapshot of user settings.

    ``model_id`` and ``api_key`` belong to Groq, which serves MCQ mode and the
    text-only fallback model. Coding mode runs on Gemini.
    """
    mode: ProcessingMode = ProcessingMode.MCQ
    model_id: str = DEFAULT_GROQ_MODEL
    language: str = DEFAULT_LANGUAGE
    api_key: str = ""
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL
    allow_fallback: bool = True

    def with_updates(self, **changes) -> "AppConfig":
        return replace(self, **changes)


class StaticConfigStore:
    """Config store around a fixed AppConfig (used by the shell and by tests)."""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig()

    def get(self) -> AppConfig:
        return self._config


class EnvConfigStore:
    """Reads configuration from environment variables on every call."""

    def get(self) -> AppConfig:
        return AppConfig(
            mode=ProcessingMode.parse(os.getenv("SOLVER_MODE", "mcq")),
            model_id=sanitize_groq_model(os.getenv("GROQ_MODEL")),
            language=os.getenv("SOLVER_LANGUAGE", DEFAULT_LANGUAGE) or DEFAULT_LANGUAGE,
            api_key=os.getenv("GROQ_API_KEY", ""),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", ""),
            gemini_model=sanitize_gemini_model(os.getenv("GEMINI_MODEL")),
            allow_fallback=_env_flag("ALLOW_FALLBACK", True),
        )
