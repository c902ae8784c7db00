"""
Style Blueprint Validator

Decides whether a style blueprint (narrative voice archetype) may be
saved. Hard rule failures become violations and block the save; softer
problems become warnings that are reported but do not block.

Keyword checks skip matches that the archetype itself lists as a
prohibition, and matches followed closely by a negation such as
"しない" or "避ける" (e.g. "謎解きをしない" is fine).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from .models import DialogueStyle, NarratorStance, OnomatopoeiaUsage, SentenceStyle

# Characters after a keyword that are searched for a negation
NEGATIVE_CONTEXT_WINDOW = 10

NEGATIVE_CONTEXT_PATTERNS = [
    "しない", "をしない", "は避ける", "を避ける", "禁止", "はNG", "はしない",
    "ない", "なし", "不要", "排除", "控える", "抑える",
]

EXPLANATION_KEYWORDS = [
    "説明する", "理由を", "原因は", "正体は", "解説", "考察",
    "分析", "真相", "謎解き", "解明", "なぜなら", "つまり",
]

ENDING_KEYWORDS = [
    "オチ", "結論", "真相を明かす", "正体を明かす", "謎を解く",
    "種明かし", "伏線回収", "どんでん返し", "衝撃の結末",
]

EMOTION_KEYWORDS = [
    "怖い", "恐ろしい", "不気味な", "戦慄", "震える", "恐怖",
    "ゾッと", "背筋が凍る", "鳥肌", "身の毛がよだつ",
]

READER_ADDRESS_PATTERNS = [
    "読者", "あなた", "皆さん", "みなさん",
    "だろう？", "ではないか？", "と思いませんか",
    "ご存知", "想像してみて",
]

CINEMATIC_KEYWORDS = [
    "劇的", "衝撃", "スリリング", "ドラマチック", "映画のような",
    "クライマックス", "サスペンス", "ホラー映画",
]

# Devices whose use shows up as punctuation rather than as the device name
DEVICE_MARKERS = {
    "感嘆符": ["！", "!"],
    "疑問符": ["？", "?"],
    "三点リーダー": ["…"],
    "会話文": ["「", "」"],
    "台詞": ["「", "」"],
    "セリフ": ["「", "」"],
}

TRAILING_PARTICLES = "のをはがにで"

MIN_TONE_FEATURES = 2
MAX_TONE_FEATURES = 6
MIN_SAMPLE_PHRASES = 2
MAX_EMOTION_LEVEL = 1
DEFAULT_MAX_STYLE_BLUEPRINTS = 100

CATEGORICAL_FIELDS = {
    "narrator_stance": {e.value for e in NarratorStance},
    "sentence_style": {e.value for e in SentenceStyle},
    "onomatopoeia_usage": {e.value for e in OnomatopoeiaUsage},
    "dialogue_style": {e.value for e in DialogueStyle},
}

DETACHED_STANCES = {NarratorStance.DETACHED.value, NarratorStance.DISTANT.value}


@dataclass
class StyleViolation:
    """A single rule hit, either blocking (error) or advisory (warning)."""
    rule: str
    severity: str
    detail: str

    def to_dict(self) -> Dict[str, str]:
        return {"rule": self.rule, "severity": self.severity, "detail": self.detail}


@dataclass
class StyleValidationResult:
    """Outcome of validating one style blueprint."""
    is_valid: bool
    violations: List[StyleViolation] = field(default_factory=list)
    warnings: List[StyleViolation] = field(default_factory=list)
    normalized_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [w.to_dict() for w in self.warnings],
            "normalized_data": self.normalized_data,
        }


def _as_dict(style_data: Union[BaseModel, Mapping[str, Any], None]) -> Dict[str, Any]:
    if isinstance(style_data, BaseModel):
        return style_data.model_dump(mode="json")
    if isinstance(style_data, Mapping):
        return dict(style_data)
    return {}


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def is_in_negative_context(text: str, keyword: str) -> bool:
    """
    Check whether the first occurrence of keyword is followed by a negation.

    Example: "謎解きをしない" -> True, "謎解きが鍵" -> False
    """
    index = text.find(keyword)
    if index == -1:
        return False
    start = index + len(keyword)
    after = text[start:start + NEGATIVE_CONTEXT_WINDOW]
    return any(pattern in after for pattern in NEGATIVE_CONTEXT_PATTERNS)


def _find_flagged(keywords: List[str], all_text: str, all_prohibitions: str) -> List[str]:
    return [
        keyword for keyword in keywords
        if keyword in all_text
        and keyword not in all_prohibitions
        and not is_in_negative_context(all_text, keyword)
    ]


def _prohibition_core(prohibition: str) -> str:
    """Strip the negation and trailing particle off a prohibition tag."""
    core = prohibition.strip()
    for pattern in sorted(NEGATIVE_CONTEXT_PATTERNS, key=len, reverse=True):
        if core.endswith(pattern):
            core = core[: -len(pattern)]
            break
    return core.rstrip(TRAILING_PARTICLES + " 　")


def _prohibited_devices_in_samples(
    prohibitions: List[str], sample_phrases: List[str]
) -> List[StyleViolation]:
    hits: List[StyleViolation] = []
    for prohibition in prohibitions:
        core = _prohibition_core(prohibition)
        markers = [
            marker
            for device, device_markers in DEVICE_MARKERS.items()
            if device in prohibition
            for marker in device_markers
        ]
        for phrase in sample_phrases:
            uses_core = (
                len(core) >= 2
                and core in phrase
                and not is_in_negative_context(phrase, core)
            )
            uses_marker = any(marker in phrase for marker in markers)
            if uses_core or uses_marker:
                hits.append(StyleViolation(
                    "prohibited_device_in_samples",
                    "error",
                    f"Sample phrase \"{phrase}\" uses a device the archetype prohibits: \"{prohibition}\".",
                ))
                break
    return hits


def validate_style_blueprint(
    style_data: Union[BaseModel, Mapping[str, Any], None]
) -> StyleValidationResult:
    """
    Validate a style blueprint.

    Args:
        style_data: StyleBlueprintData model or a plain dict with the same keys

    Returns:
        StyleValidationResult; normalized_data holds the input as a dict
        only when there are no violations
    """
    data = _as_dict(style_data)
    violations: List[StyleViolation] = []
    warnings: List[StyleViolation] = []

    archetype_name = data.get("archetype_name")
    if not isinstance(archetype_name, str):
        archetype_name = ""
    tone_features = _string_list(data.get("tone_features"))
    sample_phrases = _string_list(data.get("sample_phrases"))
    prohibitions = _string_list(data.get("style_prohibitions"))
    emotion_level = data.get("emotion_level", 0)

    all_features = " ".join(tone_features)
    all_phrases = " ".join(sample_phrases)
    all_prohibitions = " ".join(prohibitions)
    all_text = f"{all_features} {all_phrases} {archetype_name}"

    # Required fields
    if not archetype_name.strip():
        violations.append(StyleViolation(
            "required_archetype_name", "error", "Archetype name is required."
        ))

    if len(tone_features) < MIN_TONE_FEATURES:
        violations.append(StyleViolation(
            "min_tone_features", "error",
            f"At least {MIN_TONE_FEATURES} tone features are required.",
        ))
    elif len(tone_features) > MAX_TONE_FEATURES:
        warnings.append(StyleViolation(
            "max_tone_features", "warning",
            "Around five tone features is recommended.",
        ))

    for name, allowed in CATEGORICAL_FIELDS.items():
        value = data.get(name)
        if value is not None and (not isinstance(value, str) or value not in allowed):
            violations.append(StyleViolation(
                "invalid_enum_value", "error",
                f"{name} must be one of {sorted(allowed)}, got {value!r}.",
            ))
    if not isinstance(emotion_level, int) or isinstance(emotion_level, bool) \
            or emotion_level not in (0, 1, 2):
        violations.append(StyleViolation(
            "invalid_enum_value", "error",
            f"emotion_level must be 0, 1 or 2, got {emotion_level!r}.",
        ))
        emotion_level = 0

    # Keyword warnings
    for keyword in _find_flagged(EXPLANATION_KEYWORDS, all_text, all_prohibitions):
        warnings.append(StyleViolation(
            "no_explanation", "warning",
            f"Contains \"{keyword}\". Explanations of the anomaly should be avoided.",
        ))

    for keyword in _find_flagged(ENDING_KEYWORDS, all_text, all_prohibitions):
        warnings.append(StyleViolation(
            "no_ending_reveal", "warning",
            f"Contains \"{keyword}\". Punchlines and reveals should be avoided.",
        ))

    emotion_hits = _find_flagged(EMOTION_KEYWORDS, all_text, all_prohibitions)
    if len(emotion_hits) >= 2:
        warnings.append(StyleViolation(
            "no_emotion_dominance", "warning",
            f"Too many emotion words ({len(emotion_hits)} found). Keep the narration flat.",
        ))
    elif len(emotion_hits) == 1:
        warnings.append(StyleViolation(
            "emotion_warning", "warning",
            "Contains an emotion word. Restrained narration is recommended.",
        ))

    reader_hits = _find_flagged(READER_ADDRESS_PATTERNS, all_text, all_prohibitions)
    for pattern in reader_hits:
        warnings.append(StyleViolation(
            "no_reader_address", "warning",
            f"Contains \"{pattern}\". First-hand account style is recommended over addressing the reader.",
        ))

    for keyword in _find_flagged(CINEMATIC_KEYWORDS, all_text, all_prohibitions):
        warnings.append(StyleViolation(
            "no_cinematic", "warning",
            f"Contains \"{keyword}\". Flashy, cinematic wording should be avoided.",
        ))

    if emotion_level > MAX_EMOTION_LEVEL:
        warnings.append(StyleViolation(
            "emotion_level_high", "warning",
            "Emotion level is high. Restrained narration is the norm.",
        ))

    narrator_stance = data.get("narrator_stance")
    detached = isinstance(narrator_stance, str) and narrator_stance in DETACHED_STANCES
    if detached and (reader_hits or emotion_level > MAX_EMOTION_LEVEL):
        warnings.append(StyleViolation(
            "stance_inconsistency", "warning",
            "A distant or detached narrator should not address the reader or show strong emotion.",
        ))

    if not prohibitions:
        warnings.append(StyleViolation(
            "has_prohibitions", "warning",
            "Setting at least one style prohibition is recommended.",
        ))

    if len(sample_phrases) < MIN_SAMPLE_PHRASES:
        warnings.append(StyleViolation(
            "min_sample_phrases", "warning",
            "Three or more sample phrases work best.",
        ))

    # Sample phrases
    for keyword in EMOTION_KEYWORDS:
        if keyword in all_phrases:
            violations.append(StyleViolation(
                "no_emotion_in_samples", "error",
                f"Sample phrases contain the emotion word \"{keyword}\".",
            ))

    violations.extend(_prohibited_devices_in_samples(prohibitions, sample_phrases))

    is_valid = not violations
    return StyleValidationResult(
        is_valid=is_valid,
        violations=violations,
        warnings=warnings,
        normalized_data=data if is_valid else None,
    )


def calculate_style_similarity(
    a: Union[BaseModel, Mapping[str, Any]],
    b: Union[BaseModel, Mapping[str, Any]],
) -> float:
    """
    Similarity of two style blueprints in the range 0.0 to 1.0.

    Used to spot near-duplicate archetypes.
    """
    left, right = _as_dict(a), _as_dict(b)
    score = 0.0
    max_score = 0.0

    max_score += 20
    if left.get("narrator_stance") == right.get("narrator_stance"):
        score += 20

    max_score += 15
    level_gap = abs(int(left.get("emotion_level", 0)) - int(right.get("emotion_level", 0)))
    score += 15 - level_gap * 5

    max_score += 15
    if left.get("sentence_style") == right.get("sentence_style"):
        score += 15

    max_score += 10
    if left.get("dialogue_style") == right.get("dialogue_style"):
        score += 10

    max_score += 40
    left_features = {f.lower() for f in _string_list(left.get("tone_features"))}
    right_features = {f.lower() for f in _string_list(right.get("tone_features"))}
    denominator = max(len(left_features), len(right_features))
    if denominator:
        overlap = sum(
            1 for f in left_features
            if any(f in g or g in f for g in right_features)
        )
        score += overlap / denominator * 40

    return score / max_score


def can_save_style_blueprint(current_count: int, max_count: int = DEFAULT_MAX_STYLE_BLUEPRINTS) -> bool:
    """True while the number of active style blueprints is below max_count."""
    return current_count < max_count
