"""
Standardized blueprint data models.

This module defines the canonical structure for structural blueprints,
style blueprints and their persisted rows using Pydantic for validation
and type safety. Scoring and validation accept either these models or
plain dictionaries with the same keys.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt


class EndingMode(str, Enum):
    """How much of the anomaly the ending is allowed to explain."""
    OPEN = "open"
    PARTIAL_EXPLANATION = "partial_explanation"


class NarratorStance(str, Enum):
    DISTANT = "distant"
    INVOLVED = "involved"
    DETACHED = "detached"


class SentenceStyle(str, Enum):
    SHORT = "short"
    MIXED = "mixed"
    FLOWING = "flowing"


class OnomatopoeiaUsage(str, Enum):
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"


class DialogueStyle(str, Enum):
    RARE = "rare"
    FUNCTIONAL = "functional"
    NATURAL = "natural"


class BlueprintConstraints(BaseModel):
    """
    Writing constraints attached to a structural blueprint.

    Flags are strict: the scorer only credits a literal true, so "true"
    or 1 must not be coerced on the way into storage.
    """
    no_explanations: StrictBool = True
    single_anomaly_only: StrictBool = True
    no_emotion_words: StrictBool = True
    no_clean_resolution: StrictBool = True
    daily_details_min: StrictInt = Field(3, ge=0)


class StructuralBlueprint(BaseModel):
    """
    Abstract structure of a horror story.

    Holds the anomaly, the normal rule it breaks, the point of no return
    and the writing constraints. Never carries the source prose it was
    extracted from.
    """
    model_config = ConfigDict(use_enum_values=True)

    anomaly: str = ""
    normal_rule: str = ""
    irreversible_point: str = ""
    reader_understands: str = ""
    reader_cannot_understand: str = ""
    constraints: BlueprintConstraints = Field(default_factory=BlueprintConstraints)
    allowed_subgenres: List[str] = Field(default_factory=list)
    detail_bank: List[str] = Field(default_factory=list)
    ending_style: str = ""
    ending_mode: Optional[EndingMode] = None


class StyleBlueprintData(BaseModel):
    """Narrative voice archetype used to flavour generated stories."""
    model_config = ConfigDict(use_enum_values=True)

    archetype_name: str
    tone_features: List[str] = Field(default_factory=list)
    narrator_stance: NarratorStance = NarratorStance.DISTANT
    emotion_level: int = Field(0, ge=0, le=2)
    sentence_style: SentenceStyle = SentenceStyle.SHORT
    onomatopoeia_usage: OnomatopoeiaUsage = OnomatopoeiaUsage.MINIMAL
    dialogue_style: DialogueStyle = DialogueStyle.RARE
    style_prohibitions: List[str] = Field(default_factory=list)
    sample_phrases: List[str] = Field(default_factory=list)


class BlueprintRecord(BaseModel):
    """Persisted structural blueprint row."""
    id: int
    title: str
    tags: List[str] = Field(default_factory=list)
    blueprint: Dict[str, Any]
    quality_score: int = Field(..., ge=0, le=100)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StyleBlueprintRecord(BaseModel):
    """Persisted style blueprint row."""
    id: int
    archetype_name: str
    style_data: Dict[str, Any]
    quality_score: int = Field(70, ge=0, le=100)
    usage_count: int = 0
    last_used_at: Optional[str] = None
    avg_story_rating: Optional[float] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
