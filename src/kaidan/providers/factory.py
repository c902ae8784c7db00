"""
Provider construction for blueprint extraction.

The app builds its provider lazily from config; scripts and tests that
have no app use the process-wide default built from the environment.
"""

import logging
from typing import Callable, Dict, Optional

from .gemini import GeminiProvider, DEFAULT_GEMINI_MODEL
from ..config import get_env_str
from ..utils.llm import BaseLLMClient

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, Callable[..., BaseLLMClient]] = {
    "gemini": GeminiProvider,
}

_default_provider: Optional[BaseLLMClient] = None


def create_provider(provider_name: Optional[str] = None, **kwargs) -> BaseLLMClient:
    """
    Build an extraction provider by name.

    Args:
        provider_name: Key in PROVIDERS; LLM_PROVIDER from the environment when None
        **kwargs: api_key, model_name, temperature

    Raises:
        ValueError: Unknown provider, missing API key or unsupported model
    """
    name = (provider_name or get_env_str("LLM_PROVIDER", "gemini")).lower()
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise ValueError(f"Unknown LLM provider '{name}' (available: {', '.join(sorted(PROVIDERS))})")

    model_name = kwargs.get("model_name") or get_env_str("LLM_MODEL", DEFAULT_GEMINI_MODEL)
    temperature = kwargs.get("temperature")
    if temperature is None:
        temperature = float(get_env_str("LLM_TEMPERATURE", "0.3"))

    return provider_cls(api_key=kwargs.get("api_key"), model_name=model_name, temperature=temperature)


def get_default_provider() -> BaseLLMClient:
    """Return the cached environment-configured provider, creating it on first use."""
    global _default_provider

    if _default_provider is None:
        _default_provider = create_provider()
        logger.info(f"Default extraction provider: {type(_default_provider).__name__}")

    return _default_provider


def reset_default_provider() -> None:
    global _default_provider
    _default_provider = None
