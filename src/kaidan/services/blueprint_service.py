"""
Structural blueprint service.

Owns the persistence boundary for structural blueprints: every write
passes the shape check, is re-scored server-side and has its tags
normalized before it reaches the repository.

Quality scores follow two separate paths:
- computed: score_blueprint() output, the only value written on save
  and on content updates
- caller-supplied: logged as advisory on save; written only through
  override_quality_score(), which admins call explicitly
"""

import logging
import re
from typing import Dict, Any, Optional, List

from pydantic import ValidationError as PydanticValidationError

from src.kaidan.blueprint_scoring import (
    score_blueprint,
    deductions_to_warnings,
    classify_quality,
    ScoringResult,
    DEFAULT_PRIORITY_THRESHOLD,
    DEFAULT_NORMAL_THRESHOLD,
)
from src.kaidan.blueprint_normalizer import normalize_blueprint, check_anomaly_violations
from src.kaidan.models import StructuralBlueprint
from src.kaidan.utils.errors import ValidationError, NotFoundError
from src.kaidan.utils.repository import BlueprintRepository
from .blueprint_validation_service import BlueprintValidationService

logger = logging.getLogger(__name__)

AUTO_TAG_SOURCE_LENGTH = 30
AUTO_TAG_ANOMALY_WORDS = 2
AUTO_TAG_MIN_WORD_LENGTH = 2
_AUTO_TAG_SPLIT_RE = re.compile(r"[、。,.!?！？\s]+")


def generate_auto_tags(blueprint: Dict[str, Any]) -> List[str]:
    """
    Derive tags from a blueprint when the caller supplied none.

    Takes the first two words (two or more characters) from the first 30
    characters of the anomaly, then the allowed subgenres, de-duplicated
    in order.
    """
    tags: List[str] = []
    anomaly = blueprint.get("anomaly")
    if isinstance(anomaly, str) and anomaly:
        words = [
            w for w in _AUTO_TAG_SPLIT_RE.split(anomaly[:AUTO_TAG_SOURCE_LENGTH])
            if len(w) >= AUTO_TAG_MIN_WORD_LENGTH
        ]
        tags.extend(words[:AUTO_TAG_ANOMALY_WORDS])

    subgenres = blueprint.get("allowed_subgenres")
    if isinstance(subgenres, list):
        tags.extend(s for s in subgenres if isinstance(s, str) and s.strip())

    return list(dict.fromkeys(tags))


def normalize_tag_input(tags: List[str]) -> List[str]:
    """Trim tags and drop the empty ones."""
    return [t.strip() for t in tags if t.strip()]


class BlueprintService:
    """Service for structural blueprint persistence and search."""

    def __init__(
        self,
        repository: BlueprintRepository,
        priority_threshold: int = DEFAULT_PRIORITY_THRESHOLD,
        normal_threshold: int = DEFAULT_NORMAL_THRESHOLD
    ):
        """
        Initialize blueprint service.

        Args:
            repository: Blueprint repository instance
            priority_threshold: Score at or above which a blueprint is used first
            normal_threshold: Score at or above which a blueprint is used normally
        """
        self.repository = repository
        self.priority_threshold = priority_threshold
        self.normal_threshold = normal_threshold
        self.validation_service = BlueprintValidationService()

    def _tier(self, score: int) -> str:
        return classify_quality(score, self.priority_threshold, self.normal_threshold)

    def _prepare_blueprint(self, blueprint: Any) -> Dict[str, Any]:
        """
        Shape-check, enforce single anomaly and coerce a blueprint for storage.

        Raises:
            ValidationError: On a bad shape, single_anomaly_only not true,
                or field types that cannot be coerced
        """
        self.validation_service.validate_blueprint_shape(blueprint)

        if blueprint["constraints"].get("single_anomaly_only") is not True:
            raise ValidationError(
                "A blueprint must describe exactly one anomaly (single_anomaly_only must be true).",
                details={"field": "blueprint.constraints.single_anomaly_only"}
            )

        try:
            model = StructuralBlueprint.model_validate(blueprint)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid blueprint field types.",
                details={
                    "field": "blueprint",
                    "errors": [
                        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                        for err in e.errors()
                    ],
                }
            )
        return model.model_dump(mode="json", exclude_none=True)

    def preview_score(self, blueprint: Any) -> Dict[str, Any]:
        """
        Score a blueprint without saving it.

        Never raises; malformed input simply scores low.
        """
        result = score_blueprint(blueprint if isinstance(blueprint, dict) else None)
        return self._scoring_response(result)

    def _scoring_response(self, result: ScoringResult) -> Dict[str, Any]:
        response = result.to_dict()
        response["warnings"] = deductions_to_warnings(result.deductions)
        response["quality_tier"] = self._tier(result.score)
        return response

    def save_blueprint(
        self,
        title: Any,
        tags: Any,
        blueprint: Any,
        quality_score: Any = None
    ) -> Dict[str, Any]:
        """
        Validate, score and store a new blueprint.

        Args:
            title: Blueprint title (required)
            tags: Optional list of tags; derived from the blueprint when empty
            blueprint: Blueprint body
            quality_score: Caller's score; logged as advisory and never stored

        Returns:
            Dict with success, id, quality_score, quality_tier, tags,
            deductions, warnings and message

        Raises:
            ValidationError: If title, tags or blueprint are invalid
        """
        title = self.validation_service.validate_title(title)
        tag_input = self.validation_service.validate_tags(tags)
        prepared = self._prepare_blueprint(blueprint)

        # Same input as preview_score, so preview and save always agree
        result = score_blueprint(blueprint)
        if quality_score is not None and quality_score != result.score:
            logger.info(
                f"Ignoring advisory_score={quality_score!r}; computed quality_score={result.score}"
            )

        final_tags = normalize_tag_input(tag_input) or generate_auto_tags(prepared)

        blueprint_id = self.repository.create(title, final_tags, prepared, result.score)
        logger.info(
            f"Saved blueprint {blueprint_id} (quality={result.score}, "
            f"deductions={len(result.deductions)}, tags={len(final_tags)})"
        )

        return {
            "success": True,
            "id": blueprint_id,
            "quality_score": result.score,
            "quality_tier": self._tier(result.score),
            "tags": final_tags,
            "deductions": [d.to_dict() for d in result.deductions],
            "warnings": deductions_to_warnings(result.deductions),
            "message": f"Blueprint saved (score: {result.score})",
        }

    def get_blueprint(self, blueprint_id: int) -> Dict[str, Any]:
        record = self.repository.get(blueprint_id)
        if not record:
            raise NotFoundError("Blueprint", blueprint_id)
        return record

    def list_blueprints(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Summary rows (id, title, tags, quality_score, created_at), newest first."""
        return self.repository.list(limit=limit)

    def update_blueprint(
        self,
        blueprint_id: int,
        title: Optional[str] = None,
        tags: Optional[List[str]] = None,
        blueprint: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Update title, tags and/or body of a blueprint.

        A new body goes through the same shape check and re-scoring as a
        save; the stored score always matches the stored body.

        Raises:
            ValidationError: If nothing to update or any field is invalid
            NotFoundError: If the blueprint does not exist
        """
        existing = self.get_blueprint(blueprint_id)
        updates: Dict[str, Any] = {}

        if title is not None:
            updates["title"] = self.validation_service.validate_title(title)
        if blueprint is not None:
            prepared = self._prepare_blueprint(blueprint)
            updates["blueprint"] = prepared
            updates["quality_score"] = score_blueprint(blueprint).score
        if tags is not None:
            tag_input = self.validation_service.validate_tags(tags)
            stored_blueprint = updates.get("blueprint", existing["blueprint"])
            updates["tags"] = normalize_tag_input(tag_input) or generate_auto_tags(stored_blueprint)

        if not updates:
            raise ValidationError("No fields to update.", details={"id": blueprint_id})

        self.repository.update(blueprint_id, updates)
        if "quality_score" in updates and updates["quality_score"] != existing["quality_score"]:
            logger.info(
                f"Blueprint {blueprint_id} re-scored: {existing['quality_score']} -> {updates['quality_score']}"
            )
        return self.get_blueprint(blueprint_id)

    def override_quality_score(self, blueprint_id: int, quality_score: Any) -> Dict[str, Any]:
        """
        Admin override of the stored score, clamped to 0..100.

        The next content update or normalization run recomputes it.
        """
        self.get_blueprint(blueprint_id)
        score = self.validation_service.clamp_quality_score(quality_score)
        self.repository.update(blueprint_id, {"quality_score": score})
        logger.info(f"Blueprint {blueprint_id} quality_score overridden to {score}")
        return self.get_blueprint(blueprint_id)

    def delete_blueprint(self, blueprint_id: int) -> None:
        if not self.repository.delete(blueprint_id):
            raise NotFoundError("Blueprint", blueprint_id)
        logger.info(f"Deleted blueprint {blueprint_id}")

    def search_blueprints(
        self,
        query: Any,
        match_count: Any = None,
        min_quality: Any = None
    ) -> Dict[str, Any]:
        """
        Keyword search over tags, titles and anomalies.

        Returns:
            {"results": [...], "count": int}
        """
        params = self.validation_service.validate_search_params(query, match_count, min_quality)
        results = self.repository.search(
            params["query"],
            match_count=params["match_count"],
            min_quality=params["min_quality"],
        )
        logger.debug(f"Blueprint search returned {len(results)} results")
        return {"results": results, "count": len(results)}

    def normalize_report(self) -> Dict[str, Any]:
        """Dry run: list what normalize_all() would change, without writing."""
        report = []
        for record in self.repository.list_all():
            blueprint = record["blueprint"]
            _, changes = normalize_blueprint(blueprint)
            calculated = score_blueprint(blueprint).score
            constraints = blueprint.get("constraints") or {}
            report.append({
                "id": record["id"],
                "title": record["title"],
                "current": {
                    "daily_details_min": constraints.get("daily_details_min", 0),
                    "detail_bank": blueprint.get("detail_bank") or [],
                    "quality_score": record["quality_score"],
                },
                "issues": {
                    "daily_details_min_too_high": "daily_details_min" in changes,
                    "detail_bank_to_remove": changes.get("detail_bank", {}).get("removed", []),
                    "violations": check_anomaly_violations(blueprint),
                    "score_mismatch": calculated != record["quality_score"],
                    "calculated_score": calculated,
                },
            })

        problematic = [
            r for r in report
            if r["issues"]["daily_details_min_too_high"]
            or r["issues"]["detail_bank_to_remove"]
            or r["issues"]["violations"]
            or r["issues"]["score_mismatch"]
        ]
        return {
            "total": len(report),
            "problematic_count": len(problematic),
            "problematic": problematic,
            "all": report,
        }

    def normalize_all(self) -> Dict[str, Any]:
        """
        Apply the maintenance rules to every stored blueprint and re-score.

        Returns:
            {"message", "total", "updated", "diffs"}; diffs lists rows that
            changed or that imply multiple anomalies
        """
        records = self.repository.list_all()
        diffs = []
        updated = 0

        for record in records:
            normalized, changes = normalize_blueprint(record["blueprint"])
            violations = check_anomaly_violations(normalized)
            new_score = score_blueprint(normalized).score
            if new_score != record["quality_score"]:
                changes["quality_score"] = {"before": record["quality_score"], "after": new_score}

            if changes:
                self.repository.update(record["id"], {"blueprint": normalized, "quality_score": new_score})
                updated += 1

            if changes or violations:
                diffs.append({
                    "id": record["id"],
                    "title": record["title"],
                    "changes": changes,
                    "violations": violations,
                })

        logger.info(f"Normalized blueprints: {updated}/{len(records)} updated")
        return {
            "message": f"Updated {updated} blueprints",
            "total": len(records),
            "updated": updated,
            "diffs": diffs,
        }
