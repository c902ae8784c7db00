"""
Google Gemini LLM Provider implementation.

This module provides the GeminiProvider class used to extract blueprints
from source text. All Gemini-specific code is isolated here. Prompts
carry the source text, so nothing in this module logs prompt or reply
contents.
"""

import os
import logging
import time
from typing import Optional, List

import google.generativeai as genai  # type: ignore[import-untyped]

from ..utils.llm import BaseLLMClient

logger = logging.getLogger(__name__)

ALLOWED_MODELS: List[str] = [
    "gemini-2.5-flash",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
    "gemini-1.5-pro",
    "gemini-1.5-flash",
]

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# Blueprint JSON is small; 2000 tokens leaves room for long tag lists
DEFAULT_MAX_OUTPUT_TOKENS = 2000


def _validate_gemini_model_name(model_name: str) -> str:
    """
    Validate a Gemini model name and return it with the 'models/' prefix.

    Raises:
        ValueError: If the model is not in ALLOWED_MODELS
    """
    base_name = model_name.replace("models/", "")
    if base_name not in ALLOWED_MODELS:
        raise ValueError(
            f"Invalid Gemini model: {model_name}. Allowed models: {', '.join(ALLOWED_MODELS)}"
        )
    return f"models/{base_name}"


class GeminiProvider(BaseLLMClient):
    """
    Provider for interacting with Google Gemini API.

    Implements the BaseLLMClient interface so extraction code stays
    provider-agnostic.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_GEMINI_MODEL,
        temperature: float = 0.3
    ):
        """
        Initialize Gemini provider.

        Args:
            api_key: Google API key (if None, uses GOOGLE_API_KEY env var)
            model_name: Model name (default: gemini-2.5-flash)
            temperature: Generation temperature (default: 0.3)

        Raises:
            ValueError: If the API key is missing or the model name is invalid
        """
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY environment variable is required")

        genai.configure(api_key=self.api_key)
        self._genai = genai

        self._model_name = _validate_gemini_model_name(model_name)
        self.temperature = temperature

        logger.info(f"Initialized GeminiProvider with model: {self._model_name}")

    @property
    def model_name(self) -> str:
        """Get the model name being used by this provider."""
        return self._model_name

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate text using the configured Gemini model.

        Returns:
            Generated text, or "" when the model returned no text

        Raises:
            ConnectionError, TimeoutError, OSError: On network failures
        """
        start_time = time.time()
        model = self._genai.GenerativeModel(
            self.model_name,
            system_instruction=system_prompt,
        )
        generation_config = self._genai.GenerationConfig(
            temperature=temperature if temperature is not None else self.temperature,
            max_output_tokens=max_tokens or DEFAULT_MAX_OUTPUT_TOKENS,
            response_mime_type="application/json",
        )

        try:
            response = model.generate_content(prompt, generation_config=generation_config)
        except (ConnectionError, TimeoutError, OSError) as e:
            logger.error(f"Network error generating content with Gemini: {type(e).__name__}")
            raise

        duration = time.time() - start_time
        finish_reason = "UNKNOWN"
        if getattr(response, "candidates", None):
            finish_reason = getattr(response.candidates[0], "finish_reason", "UNKNOWN")

        try:
            text = response.text
        except ValueError:
            # Raised by the SDK when the candidate was blocked or empty
            text = ""

        if not text:
            logger.warning(
                f"Gemini generation finished with reason: {finish_reason}. No text returned."
            )
            return ""

        logger.debug(
            f"Gemini generation finished in {duration:.2f}s with reason {finish_reason} "
            f"({len(text)} chars)"
        )
        return text.strip()
