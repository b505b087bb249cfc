"""LLM providers, prompts and the retry/fallback policy."""

from .provider_client import ProviderClient
from .retry_controller import RetryController

__all__ = ['ProviderClient', 'RetryController']
