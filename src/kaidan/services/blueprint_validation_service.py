"""
Blueprint input validation service.

Handles request-level validation for blueprint operations:
- Title and tag input
- Blueprint shape (required keys present, constraints complete)
- Search parameters
- Source text length for extraction
- Row id parsing

Shape validation is separate from quality scoring: a well-shaped
blueprint may still score 0, and a badly shaped one is never scored.
"""

import logging
from typing import Dict, Any, Optional, List

from src.kaidan.models import EndingMode
from src.kaidan.utils.errors import ValidationError
from src.kaidan.utils.llm import MIN_TEXT_LENGTH, MAX_CHARS

logger = logging.getLogger(__name__)

REQUIRED_BLUEPRINT_KEYS = [
    "anomaly",
    "normal_rule",
    "irreversible_point",
    "reader_understands",
    "reader_cannot_understand",
    "constraints",
    "ending_style",
]

REQUIRED_CONSTRAINT_KEYS = [
    "no_explanations",
    "single_anomaly_only",
    "no_emotion_words",
    "no_clean_resolution",
    "daily_details_min",
]


class BlueprintValidationService:
    """Service for validating blueprint input parameters."""

    MAX_TITLE_LENGTH = 200
    MAX_TAGS = 20
    MAX_QUERY_LENGTH = 100
    MIN_MATCH_COUNT = 1
    MAX_MATCH_COUNT = 10
    DEFAULT_MATCH_COUNT = 3

    def validate_title(self, title: Any) -> str:
        """
        Validate a blueprint title.

        Returns:
            The trimmed title

        Raises:
            ValidationError: If the title is missing, blank or too long
        """
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required.", details={"field": "title"})
        title = title.strip()
        if len(title) > self.MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Title is too long (maximum {self.MAX_TITLE_LENGTH} characters).",
                details={"field": "title", "length": len(title), "max_length": self.MAX_TITLE_LENGTH}
            )
        return title

    def validate_tags(self, tags: Any) -> List[str]:
        """Accept None or a list of strings; anything else is rejected."""
        if tags is None:
            return []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValidationError("Tags must be a list of strings.", details={"field": "tags"})
        if len(tags) > self.MAX_TAGS:
            raise ValidationError(
                f"Too many tags (maximum {self.MAX_TAGS}).",
                details={"field": "tags", "count": len(tags), "max_count": self.MAX_TAGS}
            )
        return tags

    def validate_blueprint_shape(self, blueprint: Any) -> Dict[str, Any]:
        """
        Check that a blueprint has every required key and a complete constraints object.

        Content quality is not judged here; that is the scorer's job.

        Raises:
            ValidationError: Listing the missing keys
        """
        if not isinstance(blueprint, dict):
            raise ValidationError(
                "Blueprint must be a JSON object.",
                details={"field": "blueprint"}
            )

        missing = [key for key in REQUIRED_BLUEPRINT_KEYS if key not in blueprint]
        if missing:
            raise ValidationError(
                "Invalid blueprint format: missing required fields.",
                details={"field": "blueprint", "missing": missing}
            )

        constraints = blueprint["constraints"]
        if not isinstance(constraints, dict):
            raise ValidationError(
                "Invalid blueprint format: constraints must be an object.",
                details={"field": "blueprint.constraints"}
            )
        missing_constraints = [key for key in REQUIRED_CONSTRAINT_KEYS if key not in constraints]
        if missing_constraints:
            raise ValidationError(
                "Invalid blueprint format: constraints is incomplete.",
                details={"field": "blueprint.constraints", "missing": missing_constraints}
            )

        for key in ("allowed_subgenres", "detail_bank"):
            if key in blueprint and not isinstance(blueprint[key], list):
                raise ValidationError(
                    f"Invalid blueprint format: {key} must be a list.",
                    details={"field": f"blueprint.{key}"}
                )

        ending_mode = blueprint.get("ending_mode")
        allowed_modes = [mode.value for mode in EndingMode]
        if ending_mode is not None and ending_mode not in allowed_modes:
            raise ValidationError(
                f"Invalid ending_mode. Must be one of: {', '.join(allowed_modes)}",
                details={"field": "blueprint.ending_mode", "value": ending_mode}
            )

        return blueprint

    def validate_search_params(
        self,
        query: Any,
        match_count: Any = None,
        min_quality: Any = None
    ) -> Dict[str, Any]:
        """
        Validate and clamp search parameters.

        Returns:
            {"query": str, "match_count": 1..10, "min_quality": 0..100}
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Search query is required.", details={"field": "query"})
        query = query.strip()
        if len(query) > self.MAX_QUERY_LENGTH:
            raise ValidationError(
                f"Search query is too long (maximum {self.MAX_QUERY_LENGTH} characters).",
                details={"field": "query"}
            )

        return {
            "query": query,
            "match_count": self._clamp_int(
                match_count, self.DEFAULT_MATCH_COUNT, self.MIN_MATCH_COUNT, self.MAX_MATCH_COUNT, "match_count"
            ),
            "min_quality": self._clamp_int(min_quality, 0, 0, 100, "min_quality"),
        }

    def validate_source_text(self, source_text: Any) -> str:
        """
        Validate source text for extraction.

        The text itself never appears in error details or logs.
        """
        if not isinstance(source_text, str) or not source_text:
            raise ValidationError("Source text is required.", details={"field": "source_text"})
        length = len(source_text)
        if length < MIN_TEXT_LENGTH:
            raise ValidationError(
                f"Source text is too short (at least {MIN_TEXT_LENGTH} characters required).",
                details={"field": "source_text", "length": length, "min_length": MIN_TEXT_LENGTH}
            )
        if length > MAX_CHARS:
            raise ValidationError(
                f"Source text is too long (maximum {MAX_CHARS} characters).",
                details={"field": "source_text", "length": length, "max_length": MAX_CHARS}
            )
        return source_text

    def validate_id(self, value: Any, field: str = "id") -> int:
        """Parse a positive integer row id."""
        if isinstance(value, bool):
            raise ValidationError(f"{field} must be an integer.", details={"field": field})
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be an integer.", details={"field": field})
        if parsed < 1:
            raise ValidationError(f"{field} must be positive.", details={"field": field})
        return parsed

    def clamp_quality_score(self, value: Any) -> int:
        """Clamp a caller-supplied quality score into 0..100."""
        return self._clamp_int(value, 0, 0, 100, "quality_score")

    def _clamp_int(self, value: Any, default: int, low: int, high: int, field: str) -> int:
        if value is None:
            return default
        if isinstance(value, bool):
            raise ValidationError(f"{field} must be a number.", details={"field": field})
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a number.", details={"field": field})
        return max(low, min(high, parsed))
