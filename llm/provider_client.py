"""
Provider Client
Chooses the model that serves the next call and dispatches to the matching
SDK client. Owns the degraded (fallback) state and its cool-down.
"""

import time
from typing import Callable, Dict, Optional, Sequence, Tuple

from core.config import (
    API_FALLBACK_COOLDOWN_SECONDS,
    FALLBACK_MODEL,
    AppConfig,
    is_text_only_model,
)
from core.errors import ConfigError
from core.types import ConversationTurn, ExecutionPlan, FallbackState, ModelSelection, ProcessingMode
from .groq_client import GroqClient
from .gemini_client import GeminiClient


GROQ = "Groq"
GEMINI = "Gemini"


class ProviderClient:
    """
    Model selection plus a small cache of SDK clients keyed by API key.

    MCQ mode runs on the configured Groq model, coding mode on the configured
    Gemini model. After a rate-limit escalation every call goes to the
    text-only secondary model until the cool-down expires.
    """

    def __init__(self, config_store, fallback_state: Optional[FallbackState] = None,
                 clock: Callable[[], float] = time.monotonic,
                 cooldown: float = API_FALLBACK_COOLDOWN_SECONDS,
                 client_factories: Optional[Dict[str, Callable]] = None):
        """
        Args:
            config_store: Object with ``get() -> AppConfig``
            fallback_state: Shared degraded-mode marker
            clock: Monotonic time source in seconds
            cooldown: Seconds the degraded state lasts after an escalation
            client_factories: Provider name -> callable(api_key) returning a
                client with ``async generate(...)``
        """
        self.config_store = config_store
        self.fallback_state = fallback_state or FallbackState()
        self.clock = clock
        self.cooldown = cooldown
        self.client_factories = client_factories or {GROQ: GroqClient, GEMINI: GeminiClient}
        self._clients: Dict[Tuple[str, str], object] = {}

    # ------------------------------------------------------------------
    # Model selection
    # ------------------------------------------------------------------

    def is_degraded(self) -> bool:
        return self.fallback_state.is_degraded(self.clock(), self.cooldown)

    def enter_fallback(self):
        self.fallback_state.activate(self.clock())
        print(f"⚠️ Entering fallback mode for {self.cooldown:.0f}s: using {FALLBACK_MODEL}")

    def fallback_selection(self) -> ModelSelection:
        return ModelSelection(is_text_only=True, model_id=FALLBACK_MODEL, provider=GROQ, is_fallback=True)

    def select_model(self, mode: Optional[ProcessingMode] = None) -> ModelSelection:
        """
        Pick the model for the next call.

        Args:
            mode: Processing mode; defaults to the configured one

        Returns:
            ModelSelection for the primary model, or the secondary model
            while the fallback cool-down is running
        """
        config = self.config_store.get()
        mode = mode or config.mode

        if self.is_degraded() and config.api_key:
            return self.fallback_selection()

        if mode == ProcessingMode.CODING:
            return ModelSelection(
                is_text_only=is_text_only_model(config.gemini_model),
                model_id=config.gemini_model,
                provider=GEMINI,
            )

        return ModelSelection(
            is_text_only=is_text_only_model(config.model_id),
            model_id=config.model_id,
            provider=GROQ,
        )

    def can_fall_back(self, selection: ModelSelection) -> bool:
        """Whether a rate limit on ``selection`` may escalate to the secondary model."""
        config = self.config_store.get()
        # The secondary model is text-only too, so a text-only primary has nothing to gain
        if selection.is_fallback or selection.is_text_only or selection.model_id == FALLBACK_MODEL:
            return False
        return config.allow_fallback and bool(config.api_key)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _api_key_for(self, provider: str, config: AppConfig) -> str:
        return config.gemini_api_key if provider == GEMINI else config.api_key

    def check_credentials(self, selection: ModelSelection):
        """
        Raises:
            ConfigError: if the selected provider has no API key configured
        """
        config = self.config_store.get()
        if not self._api_key_for(selection.provider, config):
            env_name = "GEMINI_API_KEY" if selection.provider == GEMINI else "GROQ_API_KEY"
            raise ConfigError(
                f"{selection.provider} API key not configured. Please add your {selection.provider} API key in settings.",
                key=env_name,
            )

    def get_client(self, provider: str):
        config = self.config_store.get()
        api_key = self._api_key_for(provider, config)
        cache_key = (provider, api_key)

        if cache_key not in self._clients:
            factory = self.client_factories.get(provider)
            if factory is None:
                raise ConfigError(f"Unknown provider: {provider}")
            self._clients[cache_key] = factory(api_key)
            print(f"✓ {provider} client initialized")

        return self._clients[cache_key]

    async def call(self, selection: ModelSelection, system_prompt: str, user_prompt: str,
                   plan: ExecutionPlan, history: Sequence[ConversationTurn]) -> str:
        """Single dispatch, no retries. Raises ApiError on upstream failure."""
        self.check_credentials(selection)
        client = self.get_client(selection.provider)
        return await client.generate(selection.model_id, system_prompt, user_prompt, plan, history)
