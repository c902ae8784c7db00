"""
Tests for SQLite blueprint storage.

Tests cover CRUD operations, keyword matching, random picks and style
blueprint selection order.
"""

import sqlite3

import pytest

from src.kaidan.utils.db_storage import (
    Database,
    BlueprintStorage,
    StyleBlueprintStorage,
    RANDOM_PICK_SIMILARITY,
)


@pytest.fixture
def blueprint_storage(database):
    return BlueprintStorage(database)


@pytest.fixture
def style_storage(database):
    return StyleBlueprintStorage(database)


def _insert(storage, blueprint, title="鏡の家", tags=None, quality=80):
    return storage.insert(title, tags if tags is not None else ["鏡", "心霊"], blueprint, quality)


class TestDatabase:
    """Connection factory and schema."""

    def test_creates_parent_directory(self, tmp_path):
        db = Database(tmp_path / "nested" / "dir" / "kaidan.db")
        db.init_schema()

        assert (tmp_path / "nested" / "dir" / "kaidan.db").exists()

    def test_init_schema_is_idempotent(self, database):
        database.init_schema()
        database.init_schema()

        with database.transaction() as conn:
            tables = {
                row["name"] for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table'"
                )
            }
        assert {"kaidan_blueprints", "style_blueprints"} <= tables

    def test_transaction_rolls_back_on_error(self, database, blueprint_storage, complete_blueprint):
        _insert(blueprint_storage, complete_blueprint)

        with pytest.raises(sqlite3.IntegrityError):
            with database.transaction() as conn:
                conn.execute("DELETE FROM kaidan_blueprints")
                conn.execute("INSERT INTO kaidan_blueprints (title) VALUES (NULL)")

        assert blueprint_storage.count() == 1


class TestBlueprintStorage:
    """Structural blueprint CRUD."""

    def test_insert_and_get(self, blueprint_storage, complete_blueprint):
        blueprint_id = _insert(blueprint_storage, complete_blueprint)

        record = blueprint_storage.get(blueprint_id)

        assert record["id"] == blueprint_id
        assert record["title"] == "鏡の家"
        assert record["tags"] == ["鏡", "心霊"]
        assert record["blueprint"] == complete_blueprint
        assert record["quality_score"] == 80
        assert record["created_at"] is not None

    def test_get_missing(self, blueprint_storage):
        assert blueprint_storage.get(999) is None

    def test_list_summary_and_full(self, blueprint_storage, complete_blueprint):
        first = _insert(blueprint_storage, complete_blueprint, title="一")
        second = _insert(blueprint_storage, complete_blueprint, title="二")

        summary = blueprint_storage.list()
        full = blueprint_storage.list(full=True)

        assert [r["id"] for r in summary] == [second, first]
        assert set(summary[0]) == {"id", "title", "tags", "quality_score", "created_at"}
        assert full[0]["blueprint"] == complete_blueprint

    def test_list_limit(self, blueprint_storage, complete_blueprint):
        for i in range(5):
            _insert(blueprint_storage, complete_blueprint, title=f"bp{i}")

        assert len(blueprint_storage.list(limit=2)) == 2
        assert len(blueprint_storage.list_all()) == 5

    def test_update(self, blueprint_storage, complete_blueprint):
        blueprint_id = _insert(blueprint_storage, complete_blueprint)

        assert blueprint_storage.update(blueprint_id, {"title": "新しい題", "tags": ["鏡"], "quality_score": 55})

        record = blueprint_storage.get(blueprint_id)
        assert record["title"] == "新しい題"
        assert record["tags"] == ["鏡"]
        assert record["quality_score"] == 55

    def test_update_ignores_unknown_columns(self, blueprint_storage, complete_blueprint):
        blueprint_id = _insert(blueprint_storage, complete_blueprint)

        assert blueprint_storage.update(blueprint_id, {"id": 500}) is False
        assert blueprint_storage.get(blueprint_id) is not None

    def test_update_missing_row(self, blueprint_storage):
        assert blueprint_storage.update(999, {"title": "x"}) is False

    def test_delete(self, blueprint_storage, complete_blueprint):
        blueprint_id = _insert(blueprint_storage, complete_blueprint)

        assert blueprint_storage.delete(blueprint_id) is True
        assert blueprint_storage.delete(blueprint_id) is False
        assert blueprint_storage.count() == 0


class TestKeywordMatching:
    """Ranking blueprints by keyword."""

    def test_exact_tag_beats_partial(self, blueprint_storage, complete_blueprint):
        partial = _insert(blueprint_storage, complete_blueprint, title="A", tags=["鏡台"])
        exact = _insert(blueprint_storage, complete_blueprint, title="B", tags=["鏡"])

        results = blueprint_storage.match_by_keyword("鏡", match_count=5)

        assert [r["id"] for r in results] == [exact, partial]
        # tag 10 + anomaly 2
        assert results[0]["similarity"] == pytest.approx(12 / 15)
        # tag 5 + anomaly 2
        assert results[1]["similarity"] == pytest.approx(7 / 15)

    def test_similarity_caps_at_one(self, blueprint_storage, complete_blueprint):
        _insert(blueprint_storage, complete_blueprint, title="鏡の家", tags=["鏡"])

        results = blueprint_storage.match_by_keyword("鏡")

        assert results[0]["similarity"] == pytest.approx(1.0)

    def test_quality_breaks_ties(self, blueprint_storage, complete_blueprint):
        low = _insert(blueprint_storage, complete_blueprint, title="A", tags=["鏡"], quality=60)
        high = _insert(blueprint_storage, complete_blueprint, title="B", tags=["鏡"], quality=90)

        results = blueprint_storage.match_by_keyword("鏡")

        assert [r["id"] for r in results] == [high, low]

    def test_min_quality_and_match_count(self, blueprint_storage, complete_blueprint):
        _insert(blueprint_storage, complete_blueprint, tags=["鏡"], quality=20)
        for _ in range(3):
            _insert(blueprint_storage, complete_blueprint, tags=["鏡"], quality=90)

        results = blueprint_storage.match_by_keyword("鏡", match_count=2, min_quality=50)

        assert len(results) == 2
        assert all(r["quality_score"] >= 50 for r in results)

    def test_no_match(self, blueprint_storage, complete_blueprint):
        _insert(blueprint_storage, complete_blueprint)

        assert blueprint_storage.match_by_keyword("トンネル") == []
        assert blueprint_storage.match_by_keyword("   ") == []

    def test_random_blueprint(self, blueprint_storage, complete_blueprint):
        assert blueprint_storage.random_blueprint() is None

        _insert(blueprint_storage, complete_blueprint, quality=40)
        assert blueprint_storage.random_blueprint(min_quality=50) is None

        good = _insert(blueprint_storage, complete_blueprint, quality=75)
        pick = blueprint_storage.random_blueprint(min_quality=50)
        assert pick["id"] == good
        assert pick["similarity"] == RANDOM_PICK_SIMILARITY


class TestStyleBlueprintStorage:
    """Style blueprint rows."""

    def test_insert_and_get(self, style_storage, valid_style_data):
        style_id = style_storage.insert(valid_style_data, 80)

        record = style_storage.get(style_id)

        assert record["archetype_name"] == "淡々型"
        assert record["style_data"] == valid_style_data
        assert record["quality_score"] == 80
        assert record["usage_count"] == 0
        assert record["is_active"] is True
        assert record["last_used_at"] is None

    def test_deactivate_hides_from_active_lists(self, style_storage, valid_style_data):
        style_id = style_storage.insert(valid_style_data)

        assert style_storage.deactivate(style_id) is True

        assert style_storage.get(style_id)["is_active"] is False
        assert style_storage.list_active() == []
        assert style_storage.count_active() == 0
        assert style_storage.active_names() == []

    def test_list_active_orders_by_quality(self, style_storage, valid_style_data):
        low = style_storage.insert(dict(valid_style_data, archetype_name="低"), 40)
        high = style_storage.insert(dict(valid_style_data, archetype_name="高"), 90)

        assert [r["id"] for r in style_storage.list_active()] == [high, low]

    def test_record_usage(self, style_storage, valid_style_data):
        style_id = style_storage.insert(valid_style_data)

        assert style_storage.record_usage(style_id) is True
        assert style_storage.record_usage(style_id) is True

        record = style_storage.get(style_id)
        assert record["usage_count"] == 2
        assert record["last_used_at"] is not None
        assert style_storage.record_usage(999) is False

    def test_selection_prefers_unused(self, style_storage, valid_style_data):
        used = style_storage.insert(dict(valid_style_data, archetype_name="使用済"), 95)
        unused = style_storage.insert(dict(valid_style_data, archetype_name="未使用"), 50)
        style_storage.record_usage(used)

        assert [r["id"] for r in style_storage.list_for_selection()] == [unused, used]

    def test_update_style_data(self, style_storage, valid_style_data):
        style_id = style_storage.insert(valid_style_data)
        new_data = dict(valid_style_data, archetype_name="静観型")

        assert style_storage.update(style_id, {"style_data": new_data, "archetype_name": "静観型"})

        record = style_storage.get(style_id)
        assert record["archetype_name"] == "静観型"
        assert record["style_data"]["archetype_name"] == "静観型"
