"""
Text generation backends used for blueprint extraction.
"""

from .gemini import GeminiProvider
from .factory import create_provider, get_default_provider, reset_default_provider

__all__ = [
    "GeminiProvider",
    "create_provider",
    "get_default_provider",
    "reset_default_provider",
]
