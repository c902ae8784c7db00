"""
Tests for the style blueprint validator.
"""

import copy

import pytest

from src.kaidan.style_validator import (
    validate_style_blueprint,
    is_in_negative_context,
    calculate_style_similarity,
    can_save_style_blueprint,
)
from src.kaidan.models import StyleBlueprintData


def _rules(items):
    return [item.rule for item in items]


class TestValidStyleBlueprint:
    """A clean archetype passes with nothing to report."""

    def test_valid_data_passes(self, valid_style_data):
        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is True
        assert result.violations == []
        assert result.warnings == []
        assert result.normalized_data == valid_style_data

    def test_accepts_pydantic_model(self, valid_style_data):
        model = StyleBlueprintData.model_validate(valid_style_data)

        assert validate_style_blueprint(model).is_valid is True

    def test_does_not_mutate_input(self, valid_style_data):
        before = copy.deepcopy(valid_style_data)
        validate_style_blueprint(valid_style_data)
        assert valid_style_data == before

    def test_to_dict_shape(self, valid_style_data):
        valid_style_data["sample_phrases"] = ["鍵は閉めたはずだった。"]

        data = validate_style_blueprint(valid_style_data).to_dict()

        assert data["is_valid"] is True
        assert data["violations"] == []
        assert data["warnings"] == [{
            "rule": "min_sample_phrases",
            "severity": "warning",
            "detail": data["warnings"][0]["detail"],
        }]


class TestStyleViolations:
    """Hard rules block the save."""

    def test_missing_archetype_name(self, valid_style_data):
        valid_style_data["archetype_name"] = "   "

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is False
        assert _rules(result.violations) == ["required_archetype_name"]
        assert result.normalized_data is None

    def test_too_few_tone_features(self, valid_style_data):
        valid_style_data["tone_features"] = ["短文中心"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["min_tone_features"]

    def test_invalid_categorical_value(self, valid_style_data):
        valid_style_data["narrator_stance"] = "omniscient"

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["invalid_enum_value"]
        assert "narrator_stance" in result.violations[0].detail

    @pytest.mark.parametrize("level", [3, -1, "1", True, 1.5])
    def test_invalid_emotion_level(self, valid_style_data, level):
        valid_style_data["emotion_level"] = level

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["invalid_enum_value"]

    def test_emotion_word_in_samples(self, valid_style_data):
        valid_style_data["sample_phrases"].append("背筋が凍るような夜だった。")

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is False
        assert "no_emotion_in_samples" in _rules(result.violations)

    def test_prohibited_punctuation_in_samples(self, valid_style_data):
        """A sample using the exclamation mark the archetype prohibits is rejected."""
        valid_style_data["style_prohibitions"] = ["感嘆符の多用禁止"]
        valid_style_data["sample_phrases"].append("扉が開いた！")

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is False
        assert _rules(result.violations) == ["prohibited_device_in_samples"]
        assert "扉が開いた！" in result.violations[0].detail
        assert "感嘆符の多用禁止" in result.violations[0].detail

    def test_prohibited_device_named_in_samples(self, valid_style_data):
        valid_style_data["style_prohibitions"] = ["独白"]
        valid_style_data["sample_phrases"].append("独白が続いた。")

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["prohibited_device_in_samples"]

    def test_dialogue_prohibition_catches_quotes(self, valid_style_data):
        valid_style_data["style_prohibitions"] = ["会話文を使わない"]
        valid_style_data["sample_phrases"].append("「誰かいるの」と母が言った。")

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["prohibited_device_in_samples"]

    def test_one_violation_per_prohibition(self, valid_style_data):
        valid_style_data["style_prohibitions"] = ["感嘆符の多用禁止"]
        valid_style_data["sample_phrases"] = ["開いた！", "閉じた！", "消えた！"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["prohibited_device_in_samples"]

    def test_negated_use_in_sample_is_allowed(self, valid_style_data):
        """The prohibited word appearing in a negated phrase is not a use of the device."""
        valid_style_data["style_prohibitions"] = ["説明しない"]
        valid_style_data["sample_phrases"].append("説明のつかない音がした。")

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is True

    def test_violations_are_all_reported(self, valid_style_data):
        valid_style_data["archetype_name"] = ""
        valid_style_data["tone_features"] = []
        valid_style_data["dialogue_style"] = "constant"

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == [
            "required_archetype_name", "min_tone_features", "invalid_enum_value"
        ]


class TestStyleWarnings:
    """Soft rules are reported but never block."""

    def test_explanation_keyword_warns(self, valid_style_data):
        valid_style_data["tone_features"] = ["謎解き重視", "短文中心"]

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is True
        assert _rules(result.warnings) == ["no_explanation"]

    def test_negated_keyword_does_not_warn(self, valid_style_data):
        valid_style_data["tone_features"] = ["謎解きをしない", "短文中心"]

        result = validate_style_blueprint(valid_style_data)

        assert result.warnings == []

    def test_keyword_listed_as_prohibition_does_not_warn(self, valid_style_data):
        valid_style_data["tone_features"] = ["種明かし重視", "短文中心"]
        valid_style_data["style_prohibitions"] = ["種明かし"]

        result = validate_style_blueprint(valid_style_data)

        assert "no_ending_reveal" not in _rules(result.warnings)

    def test_several_emotion_words_warn_once(self, valid_style_data):
        valid_style_data["tone_features"] = ["恐怖の演出", "戦慄の描写"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.warnings) == ["no_emotion_dominance"]

    def test_single_emotion_word_warns(self, valid_style_data):
        valid_style_data["tone_features"] = ["恐怖の演出", "短文中心"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.warnings) == ["emotion_warning"]

    def test_cinematic_wording_warns(self, valid_style_data):
        valid_style_data["tone_features"] = ["劇的な展開", "短文中心"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.warnings) == ["no_cinematic"]

    def test_reader_address_with_distant_narrator(self, valid_style_data):
        """Addressing the reader also conflicts with a distant narrator."""
        valid_style_data["tone_features"] = ["あなたに語りかける", "短文中心"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.warnings) == ["no_reader_address", "stance_inconsistency"]

    def test_reader_address_with_involved_narrator(self, valid_style_data):
        valid_style_data["tone_features"] = ["あなたに語りかける", "短文中心"]
        valid_style_data["narrator_stance"] = "involved"

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.warnings) == ["no_reader_address"]

    def test_high_emotion_level(self, valid_style_data):
        valid_style_data["emotion_level"] = 2
        valid_style_data["narrator_stance"] = "involved"

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is True
        assert _rules(result.warnings) == ["emotion_level_high"]

    def test_too_many_tone_features(self, valid_style_data):
        valid_style_data["tone_features"] = ["短文", "列挙", "淡白", "客観", "簡潔", "静謐", "抑制"]

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.warnings) == ["max_tone_features"]

    def test_missing_prohibitions_and_samples(self, valid_style_data):
        valid_style_data["style_prohibitions"] = []
        valid_style_data["sample_phrases"] = []

        result = validate_style_blueprint(valid_style_data)

        assert result.is_valid is True
        assert _rules(result.warnings) == ["has_prohibitions", "min_sample_phrases"]


class TestValidatorTotality:
    """The validator returns a result for any input."""

    def test_all_empty_lists(self):
        result = validate_style_blueprint({
            "archetype_name": "空",
            "tone_features": [],
            "style_prohibitions": [],
            "sample_phrases": [],
        })

        assert result.is_valid is False
        assert _rules(result.violations) == ["min_tone_features"]

    @pytest.mark.parametrize("value", [None, {}, [], "text"])
    def test_malformed_input(self, value):
        result = validate_style_blueprint(value)

        assert result.is_valid is False
        assert "required_archetype_name" in _rules(result.violations)

    @pytest.mark.parametrize("field", ["narrator_stance", "sentence_style", "onomatopoeia_usage", "dialogue_style"])
    @pytest.mark.parametrize("value", [["distant"], {"value": "distant"}, 3])
    def test_non_string_categorical(self, valid_style_data, field, value):
        valid_style_data[field] = value

        result = validate_style_blueprint(valid_style_data)

        assert _rules(result.violations) == ["invalid_enum_value"]
        assert field in result.violations[0].detail

    def test_unhashable_stance_with_reader_address(self, valid_style_data):
        valid_style_data["narrator_stance"] = ["detached"]
        valid_style_data["tone_features"].append("あなたに語りかける")

        result = validate_style_blueprint(valid_style_data)

        assert "invalid_enum_value" in _rules(result.violations)
        assert "stance_inconsistency" not in _rules(result.warnings)

    def test_non_string_list_items_are_ignored(self, valid_style_data):
        valid_style_data["sample_phrases"] = [None, 3, "鍵は閉めたはずだった。", "靴が増えていた。"]

        assert validate_style_blueprint(valid_style_data).is_valid is True


class TestNegativeContext:
    """Negation lookup after a keyword."""

    @pytest.mark.parametrize("text,keyword,expected", [
        ("謎解きをしない", "謎解き", True),
        ("説明は避ける", "説明", True),
        ("真相は不要", "真相", True),
        ("謎解きが鍵", "謎解き", False),
        ("何もない", "謎解き", False),
    ])
    def test_negative_context(self, text, keyword, expected):
        assert is_in_negative_context(text, keyword) is expected

    def test_negation_outside_window_is_ignored(self):
        text = "謎解き" + "あ" * 12 + "しない"
        assert is_in_negative_context(text, "謎解き") is False


class TestStyleSimilarity:
    """Near-duplicate detection between archetypes."""

    def test_identical_is_one(self, valid_style_data):
        assert calculate_style_similarity(valid_style_data, valid_style_data) == pytest.approx(1.0)

    def test_completely_different(self, valid_style_data):
        other = {
            "narrator_stance": "involved",
            "emotion_level": 2,
            "sentence_style": "flowing",
            "dialogue_style": "natural",
            "tone_features": ["饒舌", "口語"],
        }

        # Only the emotion component contributes: 15 - 2 * 5 = 5
        assert calculate_style_similarity(valid_style_data, other) == pytest.approx(0.05)

    def test_tone_overlap_counts_substrings(self, valid_style_data):
        other = copy.deepcopy(valid_style_data)
        other["tone_features"] = ["短文", "列挙"]

        # 60 from categorical fields, plus 2 of 3 features matching by substring
        assert calculate_style_similarity(valid_style_data, other) == pytest.approx((60 + 80 / 3) / 100)

    def test_no_tone_features(self):
        a = {"narrator_stance": "distant", "emotion_level": 0}
        # Missing categorical fields compare equal; only the tone component is empty
        assert calculate_style_similarity(a, a) == pytest.approx(0.6)


class TestCanSaveStyleBlueprint:
    """Active style blueprint capacity."""

    def test_below_limit(self):
        assert can_save_style_blueprint(99) is True

    def test_at_limit(self):
        assert can_save_style_blueprint(100) is False

    def test_custom_limit(self):
        assert can_save_style_blueprint(2, max_count=3) is True
        assert can_save_style_blueprint(3, max_count=3) is False
