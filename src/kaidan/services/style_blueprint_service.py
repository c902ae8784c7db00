"""
Style blueprint service.

Handles creation, update, logical deletion and generation-time selection
of style blueprints. The style validator runs on every write that
touches style data; a rejected write leaves storage untouched.
"""

import logging
import random
from typing import Dict, Any, Optional, List, Iterable

from pydantic import ValidationError as PydanticValidationError

from src.kaidan.models import StyleBlueprintData
from src.kaidan.style_validator import (
    validate_style_blueprint,
    can_save_style_blueprint,
    StyleValidationResult,
    DEFAULT_MAX_STYLE_BLUEPRINTS,
)
from src.kaidan.utils.errors import (
    ValidationError,
    NotFoundError,
    StyleValidationError,
    CapacityError,
)
from src.kaidan.utils.repository import StyleBlueprintRepository
from .blueprint_validation_service import BlueprintValidationService

logger = logging.getLogger(__name__)

DEFAULT_STYLE_QUALITY = 70
SELECTION_POOL_SIZE = 3


def resolve_unique_name(name: str, existing_names: Iterable[str]) -> str:
    """
    Return name, or name with " (2)", " (3)"... appended until it is unused.

    Example: "淡々型" taken -> "淡々型 (2)"; both taken -> "淡々型 (3)"
    """
    taken = set(existing_names)
    if name not in taken:
        return name
    counter = 2
    while f"{name} ({counter})" in taken:
        counter += 1
    return f"{name} ({counter})"


class StyleBlueprintService:
    """Service for style blueprint persistence and selection."""

    def __init__(
        self,
        repository: StyleBlueprintRepository,
        max_active: int = DEFAULT_MAX_STYLE_BLUEPRINTS,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize style blueprint service.

        Args:
            repository: Style blueprint repository instance
            max_active: Maximum number of active style blueprints
            rng: Random source for selection (seed it in tests)
        """
        self.repository = repository
        self.max_active = max_active
        self.rng = rng or random.Random()
        self.validation_service = BlueprintValidationService()

    def validate(self, style_data: Any) -> StyleValidationResult:
        """Dry-run the style validator without touching storage."""
        return validate_style_blueprint(style_data if isinstance(style_data, dict) else None)

    def _checked_style_data(self, style_data: Dict[str, Any]) -> Dict[str, Any]:
        result = validate_style_blueprint(style_data)
        if not result.is_valid:
            violations = [v.to_dict() for v in result.violations]
            logger.info(
                f"Rejected style blueprint: {', '.join(v['rule'] for v in violations)}"
            )
            raise StyleValidationError(violations, [w.to_dict() for w in result.warnings])
        try:
            return StyleBlueprintData.model_validate(style_data).model_dump(mode="json")
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid style blueprint field types.",
                details={
                    "field": "styleData",
                    "errors": [
                        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                        for err in e.errors()
                    ],
                }
            )

    def create(self, style_data: Any, quality_score: Any = None) -> Dict[str, Any]:
        """
        Validate and store a new style blueprint.

        The archetype name is made unique among active blueprints before
        validation runs.

        Returns:
            {"success", "id", "archetype_name", "warnings", "message"}

        Raises:
            ValidationError: If style_data is not an object
            CapacityError: If the active limit is reached
            StyleValidationError: If any hard style rule fails
        """
        if not isinstance(style_data, dict):
            raise ValidationError("styleData is required.", details={"field": "styleData"})

        current_count = self.repository.count_active()
        if not can_save_style_blueprint(current_count, self.max_active):
            raise CapacityError(current_count, self.max_active)

        data = dict(style_data)
        name = data.get("archetype_name")
        if isinstance(name, str) and name.strip():
            data["archetype_name"] = resolve_unique_name(name.strip(), self.repository.active_names())

        checked = self._checked_style_data(data)
        warnings = [w.to_dict() for w in validate_style_blueprint(checked).warnings]

        score = (
            DEFAULT_STYLE_QUALITY if quality_score is None
            else self.validation_service.clamp_quality_score(quality_score)
        )
        style_id = self.repository.create(checked, score)
        logger.info(f"Created style blueprint {style_id} (warnings={len(warnings)})")

        return {
            "success": True,
            "id": style_id,
            "archetype_name": checked["archetype_name"],
            "warnings": warnings,
            "message": f"Saved style blueprint \"{checked['archetype_name']}\"",
        }

    def get(self, style_id: int) -> Dict[str, Any]:
        record = self.repository.get(style_id)
        if not record:
            raise NotFoundError("StyleBlueprint", style_id)
        return record

    def list_active(self) -> List[Dict[str, Any]]:
        """Active style blueprints, highest quality first."""
        return self.repository.list_active()

    def update(
        self,
        style_id: int,
        style_data: Any = None,
        is_active: Any = None,
        quality_score: Any = None
    ) -> Dict[str, Any]:
        """
        Update a style blueprint.

        New style data is re-validated and renames the archetype; the
        quality score is clamped to 0..100.

        Raises:
            ValidationError: If there is nothing to update
            NotFoundError: If the style blueprint does not exist
            StyleValidationError: If new style data fails a hard rule
        """
        existing = self.get(style_id)
        updates: Dict[str, Any] = {}

        if is_active is not None:
            if not isinstance(is_active, bool):
                raise ValidationError("is_active must be a boolean.", details={"field": "is_active"})
            updates["is_active"] = is_active

        if quality_score is not None:
            updates["quality_score"] = self.validation_service.clamp_quality_score(quality_score)

        warnings: List[Dict[str, Any]] = []
        if style_data is not None:
            if not isinstance(style_data, dict):
                raise ValidationError("styleData must be an object.", details={"field": "styleData"})
            data = dict(style_data)
            name = data.get("archetype_name")
            if isinstance(name, str) and name.strip():
                others = [n for n in self.repository.active_names() if n != existing["archetype_name"]]
                data["archetype_name"] = resolve_unique_name(name.strip(), others)
            checked = self._checked_style_data(data)
            warnings = [w.to_dict() for w in validate_style_blueprint(checked).warnings]
            updates["style_data"] = checked
            updates["archetype_name"] = checked["archetype_name"]

        if not updates:
            raise ValidationError("No fields to update.", details={"id": style_id})

        self.repository.update(style_id, updates)
        logger.info(f"Updated style blueprint {style_id}: {', '.join(sorted(updates))}")
        return {"success": True, "style_blueprint": self.get(style_id), "warnings": warnings}

    def deactivate(self, style_id: int) -> None:
        """Logical delete: the row stays but is no longer selectable."""
        self.get(style_id)
        self.repository.deactivate(style_id)
        logger.info(f"Deactivated style blueprint {style_id}")

    def select_for_generation(self) -> Optional[Dict[str, Any]]:
        """
        Pick a style blueprint for the next story.

        Takes the top three by least recent use, rating and quality, and
        picks one of them at random. Returns None when none are active.
        """
        candidates = self.repository.list_for_selection()[:SELECTION_POOL_SIZE]
        if not candidates:
            return None
        return self.rng.choice(candidates)

    def record_usage(self, style_id: int) -> None:
        """Increment usage_count and stamp last_used_at."""
        if not self.repository.record_usage(style_id):
            logger.warning(f"Could not record usage for missing style blueprint {style_id}")
