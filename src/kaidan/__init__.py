"""
Kaidan Blueprint service

Quality scoring, style validation and storage for the blueprints that
drive horror story generation.
"""

from .blueprint_scoring import score_blueprint, deductions_to_warnings, classify_quality
from .style_validator import (
    validate_style_blueprint,
    calculate_style_similarity,
    can_save_style_blueprint,
)
from .generic_blueprint import get_generic_blueprint, is_generic_blueprint

__version__ = "0.1.0"

__all__ = [
    "score_blueprint",
    "deductions_to_warnings",
    "classify_quality",
    "validate_style_blueprint",
    "calculate_style_similarity",
    "can_save_style_blueprint",
    "get_generic_blueprint",
    "is_generic_blueprint",
]
