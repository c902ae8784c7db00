"""
Tests for blueprint maintenance normalization.
"""

import pytest

from src.kaidan.blueprint_normalizer import (
    should_remove_detail_item,
    normalize_detail_bank,
    check_anomaly_violations,
    normalize_blueprint,
)


class TestDetailItems:
    """Which detail bank entries survive."""

    @pytest.mark.parametrize("item", ["蛍光灯", "洗面台", "トラック", "廊下", "自販機"])
    def test_concrete_nouns_are_kept(self, item):
        assert should_remove_detail_item(item) is False

    @pytest.mark.parametrize("item", [
        "おにぎり",
        "夏の夜",
        "カレーの匂い",
        "静かな雰囲気",
        "島唄",
        "冷や汗",
        "子供の泣き声",
        "日常の生活音",
    ])
    def test_evaluative_items_are_removed(self, item):
        assert should_remove_detail_item(item) is True

    @pytest.mark.parametrize("item", ["", "   ", None, 42, "とても長い説明的なディテール項目"])
    def test_blank_long_or_non_string_items_are_removed(self, item):
        assert should_remove_detail_item(item) is True

    def test_normalize_detail_bank_keeps_order(self):
        kept, removed = normalize_detail_bank(["蛍光灯", "ビール", "廊下", "寒い朝"])

        assert kept == ["蛍光灯", "廊下"]
        assert removed == ["ビール", "寒い朝"]

    def test_normalize_detail_bank_non_list(self):
        assert normalize_detail_bank("蛍光灯") == ([], [])


class TestAnomalyViolations:
    """Wording that suggests more than one anomaly."""

    def test_single_anomaly_has_no_violations(self, complete_blueprint):
        assert check_anomaly_violations(complete_blueprint) == []

    def test_multiple_wording_is_reported(self, complete_blueprint):
        complete_blueprint["anomaly"] = "複数の影が廊下に立っている"
        complete_blueprint["irreversible_point"] = "3人が同時に消えた"

        violations = check_anomaly_violations(complete_blueprint)

        assert len(violations) == 2
        assert any("anomaly" in v and "複数の" in v for v in violations)
        assert any("irreversible_point" in v and "3人" in v for v in violations)

    def test_missing_fields(self):
        assert check_anomaly_violations({}) == []


class TestNormalizeBlueprint:
    """Whole-blueprint normalization."""

    def test_clean_blueprint_is_unchanged(self, complete_blueprint):
        normalized, changes = normalize_blueprint(complete_blueprint)

        assert changes == {}
        assert normalized == complete_blueprint

    def test_caps_daily_details_min(self, complete_blueprint):
        complete_blueprint["constraints"]["daily_details_min"] = 3

        normalized, changes = normalize_blueprint(complete_blueprint)

        assert normalized["constraints"]["daily_details_min"] == 1
        assert changes["daily_details_min"] == {"before": 3, "after": 1}

    def test_filters_detail_bank(self, complete_blueprint):
        complete_blueprint["detail_bank"] = ["洗面台", "味噌汁の香り", "蛍光灯"]

        normalized, changes = normalize_blueprint(complete_blueprint)

        assert normalized["detail_bank"] == ["洗面台", "蛍光灯"]
        assert changes["detail_bank"]["removed"] == ["味噌汁の香り"]
        assert changes["detail_bank"]["before"] == ["洗面台", "味噌汁の香り", "蛍光灯"]

    def test_input_is_not_mutated(self, complete_blueprint):
        complete_blueprint["constraints"]["daily_details_min"] = 5
        complete_blueprint["detail_bank"] = ["ビール"]

        normalize_blueprint(complete_blueprint)

        assert complete_blueprint["constraints"]["daily_details_min"] == 5
        assert complete_blueprint["detail_bank"] == ["ビール"]
