"""
Blueprint Quality Scorer

Scores a structural blueprint on a 0-100 scale using a fixed deduction
rubric. Every rule is checked independently and every fired rule is
reported, so callers can show the full list of problems at once.

The scorer never raises: malformed or missing fields simply count as
missing.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

from pydantic import BaseModel

MAX_SCORE = 100

# Minimum trimmed length for the core and secondary text fields
CORE_FIELD_MIN_LENGTH = 5
SECONDARY_FIELD_MIN_LENGTH = 3
MIN_DETAIL_BANK_ITEMS = 3

# (field, min_length, points, severity, message)
CORE_TEXT_RULES = [
    ("anomaly", CORE_FIELD_MIN_LENGTH, 30, "error",
     "Anomaly is missing or too short (at least 5 characters required)."),
    ("normal_rule", CORE_FIELD_MIN_LENGTH, 20, "error",
     "Normal rule is missing or too short (at least 5 characters required)."),
    ("irreversible_point", CORE_FIELD_MIN_LENGTH, 25, "error",
     "Irreversible point is missing or too short (at least 5 characters required)."),
]

SECONDARY_TEXT_RULES = [
    ("reader_understands", SECONDARY_FIELD_MIN_LENGTH, 5, "warning",
     "What the reader understands is not described."),
    ("reader_cannot_understand", SECONDARY_FIELD_MIN_LENGTH, 5, "warning",
     "What the reader cannot understand is not described."),
    ("ending_style", SECONDARY_FIELD_MIN_LENGTH, 5, "warning",
     "Ending style is not described."),
]

SINGLE_ANOMALY_POINTS = 30
NO_EXPLANATIONS_POINTS = 10
DETAIL_BANK_POINTS = 3
SUBGENRES_POINTS = 2

DEFAULT_PRIORITY_THRESHOLD = 70
DEFAULT_NORMAL_THRESHOLD = 50


@dataclass
class Deduction:
    """A single fired scoring rule."""
    field: str
    message: str
    points: int
    severity: str  # "error" or "warning"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "points": self.points,
            "severity": self.severity,
        }


@dataclass
class ScoringResult:
    """Outcome of scoring one blueprint."""
    score: int
    deductions: List[Deduction] = field(default_factory=list)
    total_deduction: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "deductions": [d.to_dict() for d in self.deductions],
            "total_deduction": self.total_deduction,
            "totalDeduction": self.total_deduction,
        }


def _as_mapping(blueprint: Union[BaseModel, Mapping[str, Any], None]) -> Mapping[str, Any]:
    if isinstance(blueprint, BaseModel):
        return blueprint.model_dump()
    if isinstance(blueprint, Mapping):
        return blueprint
    return {}


def _trimmed_length(value: Any) -> int:
    if not isinstance(value, str):
        return 0
    return len(value.strip())


def score_blueprint(blueprint: Union[BaseModel, Mapping[str, Any], None]) -> ScoringResult:
    """
    Score a structural blueprint.

    Args:
        blueprint: StructuralBlueprint model or a plain dict with the same keys

    Returns:
        ScoringResult with the clamped score, all deductions in rule order
        and the unclamped deduction total
    """
    data = _as_mapping(blueprint)
    constraints = data.get("constraints")
    if not isinstance(constraints, Mapping):
        constraints = {}

    deductions: List[Deduction] = []

    for name, min_length, points, severity, message in CORE_TEXT_RULES:
        if _trimmed_length(data.get(name)) < min_length:
            deductions.append(Deduction(name, message, points, severity))

    if constraints.get("single_anomaly_only") is not True:
        deductions.append(Deduction(
            "constraints.single_anomaly_only",
            "Only a single anomaly is allowed; single_anomaly_only must be true.",
            SINGLE_ANOMALY_POINTS,
            "error",
        ))

    if constraints.get("no_explanations") is not True:
        deductions.append(Deduction(
            "constraints.no_explanations",
            "The anomaly should stay unexplained; no_explanations should be true.",
            NO_EXPLANATIONS_POINTS,
            "warning",
        ))

    for name, min_length, points, severity, message in SECONDARY_TEXT_RULES:
        if _trimmed_length(data.get(name)) < min_length:
            deductions.append(Deduction(name, message, points, severity))

    detail_bank = data.get("detail_bank")
    if not isinstance(detail_bank, list) or len(detail_bank) < MIN_DETAIL_BANK_ITEMS:
        deductions.append(Deduction(
            "detail_bank",
            f"Detail bank needs at least {MIN_DETAIL_BANK_ITEMS} everyday details.",
            DETAIL_BANK_POINTS,
            "warning",
        ))

    subgenres = data.get("allowed_subgenres")
    if not isinstance(subgenres, list) or not subgenres:
        deductions.append(Deduction(
            "allowed_subgenres",
            "No subgenres are set.",
            SUBGENRES_POINTS,
            "warning",
        ))

    total = sum(d.points for d in deductions)
    score = max(0, min(MAX_SCORE, MAX_SCORE - total))

    return ScoringResult(score=score, deductions=deductions, total_deduction=total)


def deductions_to_warnings(deductions: List[Deduction]) -> List[Dict[str, Any]]:
    """Reshape deductions into the warning entries shown by the admin UI."""
    return [
        {
            "field": d.field,
            "message": d.message,
            "severity": d.severity,
            "deduction": d.points,
        }
        for d in deductions
    ]


def classify_quality(
    score: int,
    priority_threshold: int = DEFAULT_PRIORITY_THRESHOLD,
    normal_threshold: int = DEFAULT_NORMAL_THRESHOLD,
) -> str:
    """
    Map a score onto its usage tier.

    Returns:
        "priority" at or above priority_threshold, "normal" at or above
        normal_threshold, otherwise "low"
    """
    if score >= priority_threshold:
        return "priority"
    if score >= normal_threshold:
        return "normal"
    return "low"
