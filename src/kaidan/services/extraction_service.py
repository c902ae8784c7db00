"""
Blueprint extraction service.

Turns a horror story text into a structural blueprint candidate (or a
style blueprint candidate) through the LLM provider. Nothing is saved
here: the admin reviews the candidate and saves it through the blueprint
services.

The source text is only ever placed into prompts. It is never logged,
stored or echoed back in responses or error details.
"""

import logging
from typing import Dict, Any, Optional, Callable, List

from src.kaidan.blueprint_scoring import score_blueprint, deductions_to_warnings
from src.kaidan.models import StyleBlueprintData
from src.kaidan.style_validator import validate_style_blueprint
from src.kaidan.utils.errors import ServiceUnavailableError
from src.kaidan.utils.llm import (
    BaseLLMClient,
    BlueprintParseError,
    LONG_TEXT_THRESHOLD,
    extract_json_object,
    normalize_tags,
    parse_blueprint,
    split_text_into_chunks,
)
from src.kaidan.utils.blueprint_prompt_builder import (
    SYSTEM_PROMPT,
    build_short_text_prompt,
    build_part_prompt,
    build_unify_prompt,
    build_style_prompt,
)
from .blueprint_validation_service import BlueprintValidationService

logger = logging.getLogger(__name__)

STYLE_FIELDS = list(StyleBlueprintData.model_fields.keys())


class ExtractionService:
    """Service for LLM-backed blueprint extraction."""

    def __init__(
        self,
        provider: Optional[BaseLLMClient] = None,
        provider_factory: Optional[Callable[[], BaseLLMClient]] = None
    ):
        """
        Initialize extraction service.

        Args:
            provider: LLM provider instance
            provider_factory: Called on first use when provider is None
                (typically providers.get_default_provider)
        """
        self._provider = provider
        self._provider_factory = provider_factory
        self.validation_service = BlueprintValidationService()

    @property
    def provider(self) -> BaseLLMClient:
        if self._provider is None:
            if self._provider_factory is None:
                raise ServiceUnavailableError("llm", "No LLM provider is configured.")
            try:
                self._provider = self._provider_factory()
            except ValueError as e:
                logger.error(f"Failed to create LLM provider: {e}")
                raise ServiceUnavailableError("llm", "LLM provider is not configured correctly.")
        return self._provider

    def _call_llm(self, prompt: str) -> str:
        try:
            return self.provider.generate(prompt, system_prompt=SYSTEM_PROMPT)
        except (ConnectionError, TimeoutError, OSError) as e:
            logger.error(f"LLM call failed: {type(e).__name__}")
            raise ServiceUnavailableError("llm", "The LLM service could not be reached. Please try again.")

    def _extract_one(self, prompt: str) -> Dict[str, Any]:
        reply = self._call_llm(prompt)
        try:
            return parse_blueprint(reply)
        except BlueprintParseError as e:
            logger.warning(f"Could not parse blueprint from LLM reply: {e}")
            raise ServiceUnavailableError(
                "llm", "Failed to parse the blueprint JSON returned by the model. Please try again."
            )

    def extract_blueprint(self, source_text: Any) -> Dict[str, Any]:
        """
        Extract a structural blueprint candidate from source text.

        Texts under LONG_TEXT_THRESHOLD characters are handled in one call;
        longer texts are split into paragraph-aligned chunks, extracted per
        part and then unified.

        Returns:
            {"blueprint", "tags", "mode": "short"|"long", "chunks", "scoring"}

        Raises:
            ValidationError: If the text length is out of range
            ServiceUnavailableError: If the LLM fails or returns unusable output
        """
        text = self.validation_service.validate_source_text(source_text)

        if len(text) < LONG_TEXT_THRESHOLD:
            mode = "short"
            chunk_count = 1
            result = self._extract_one(build_short_text_prompt(text))
        else:
            mode = "long"
            chunks = split_text_into_chunks(text)
            chunk_count = len(chunks)
            parts: List[Dict[str, Any]] = [
                self._extract_one(build_part_prompt(chunk, i, chunk_count))
                for i, chunk in enumerate(chunks, start=1)
            ]
            if len(parts) == 1:
                result = parts[0]
            else:
                result = self._extract_one(build_unify_prompt(parts))

        tags = normalize_tags(result.pop("tags", []))
        scoring = score_blueprint(result)
        logger.info(
            f"Extracted blueprint (mode={mode}, chunks={chunk_count}, "
            f"length={len(text)}, score={scoring.score})"
        )

        return {
            "blueprint": result,
            "tags": tags,
            "mode": mode,
            "chunks": chunk_count,
            "scoring": {
                "score": scoring.score,
                "warnings": deductions_to_warnings(scoring.deductions),
            },
        }

    def extract_style(self, source_text: Any) -> Dict[str, Any]:
        """
        Extract a style blueprint candidate from source text.

        Returns:
            {"style_data": candidate, "validation": validator result}
        """
        text = self.validation_service.validate_source_text(source_text)
        reply = self._call_llm(build_style_prompt(text))
        try:
            parsed = extract_json_object(reply)
        except BlueprintParseError as e:
            logger.warning(f"Could not parse style blueprint from LLM reply: {e}")
            raise ServiceUnavailableError(
                "llm", "Failed to parse the style JSON returned by the model. Please try again."
            )

        candidate = {key: parsed[key] for key in STYLE_FIELDS if key in parsed}
        candidate.setdefault("archetype_name", "")
        for key in ("tone_features", "style_prohibitions", "sample_phrases"):
            if not isinstance(candidate.get(key), list):
                candidate[key] = []

        validation = validate_style_blueprint(candidate)
        logger.info(
            f"Extracted style blueprint (valid={validation.is_valid}, "
            f"violations={len(validation.violations)})"
        )
        return {"style_data": candidate, "validation": validation.to_dict()}
