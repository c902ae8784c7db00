"""
Tests for the maintenance CLI.
"""

import json

import pytest
from click.testing import CliRunner

from cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def db_path(database, tmp_path):
    """Path of the temporary database used by the repositories fixture."""
    return str(tmp_path / "test_kaidan.db")


def write_json(path, data):
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return str(path)


class TestScoreCommand:
    """Scoring blueprint files."""

    def test_complete_blueprint(self, runner, tmp_path, complete_blueprint):
        result = runner.invoke(cli, ["score", write_json(tmp_path / "bp.json", complete_blueprint)])

        assert result.exit_code == 0
        assert "Score: 100/100" in result.output

    def test_deductions_listed(self, runner, tmp_path, empty_blueprint):
        result = runner.invoke(cli, ["score", write_json(tmp_path / "bp.json", empty_blueprint)])

        assert result.exit_code == 0
        assert "Score: 0/100 (total deduction 135)" in result.output
        assert "anomaly" in result.output

    def test_json_output(self, runner, tmp_path, complete_blueprint):
        complete_blueprint["detail_bank"] = []

        result = runner.invoke(cli, ["score", "--json", write_json(tmp_path / "bp.json", complete_blueprint)])

        data = json.loads(result.output)
        assert data["score"] == 97
        assert data["deductions"][0]["field"] == "detail_bank"

    def test_invalid_json(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{broken", encoding="utf-8")

        result = runner.invoke(cli, ["score", str(path)])

        assert result.exit_code == 2
        assert "not valid JSON" in result.output

    def test_non_object_json(self, runner, tmp_path):
        result = runner.invoke(cli, ["score", write_json(tmp_path / "list.json", [1, 2])])

        assert result.exit_code == 2


class TestValidateStyleCommand:
    """Validating style files."""

    def test_valid_style(self, runner, tmp_path, valid_style_data):
        result = runner.invoke(cli, ["validate-style", write_json(tmp_path / "style.json", valid_style_data)])

        assert result.exit_code == 0
        assert result.output.startswith("VALID")

    def test_invalid_style_exits_1(self, runner, tmp_path, valid_style_data):
        valid_style_data["archetype_name"] = "  "

        result = runner.invoke(cli, ["validate-style", write_json(tmp_path / "style.json", valid_style_data)])

        assert result.exit_code == 1
        assert "INVALID" in result.output
        assert "[required_archetype_name]" in result.output


class TestStorageCommands:
    """Commands that read and write the database."""

    def test_list_empty(self, runner, db_path):
        result = runner.invoke(cli, ["--db", db_path, "list-blueprints"])

        assert result.exit_code == 0
        assert "No blueprints found." in result.output

    def test_list_json(self, runner, db_path, blueprint_repository, complete_blueprint):
        blueprint_repository.create("鏡の家", ["鏡"], complete_blueprint, 100)

        result = runner.invoke(cli, ["--db", db_path, "list-blueprints", "--format", "json"])

        rows = json.loads(result.output)
        assert [row["title"] for row in rows] == ["鏡の家"]

    def test_delete_with_confirm_flag(self, runner, db_path, blueprint_repository, complete_blueprint):
        blueprint_id = blueprint_repository.create("鏡の家", ["鏡"], complete_blueprint, 100)

        result = runner.invoke(cli, ["--db", db_path, "delete-blueprint", str(blueprint_id), "--confirm"])

        assert result.exit_code == 0
        assert blueprint_repository.get(blueprint_id) is None

    def test_delete_cancelled(self, runner, db_path, blueprint_repository, complete_blueprint):
        blueprint_id = blueprint_repository.create("鏡の家", ["鏡"], complete_blueprint, 100)

        result = runner.invoke(cli, ["--db", db_path, "delete-blueprint", str(blueprint_id)], input="n\n")

        assert "Cancelled." in result.output
        assert blueprint_repository.get(blueprint_id) is not None

    def test_delete_missing(self, runner, db_path):
        result = runner.invoke(cli, ["--db", db_path, "delete-blueprint", "999", "--confirm"])

        assert result.exit_code == 1
        assert "999" in result.output

    def test_list_styles(self, runner, db_path, style_repository, valid_style_data):
        style_repository.create(valid_style_data, 80)

        result = runner.invoke(cli, ["--db", db_path, "list-styles"])

        assert "淡々型" in result.output

    def test_normalize_report_does_not_write(self, runner, db_path, blueprint_repository, complete_blueprint):
        blueprint_id = blueprint_repository.create("鏡の家", ["鏡"], complete_blueprint, 90)

        result = runner.invoke(cli, ["--db", db_path, "normalize"])

        assert "1/1 blueprints need attention." in result.output
        assert blueprint_repository.get(blueprint_id)["quality_score"] == 90

    def test_normalize_apply(self, runner, db_path, blueprint_repository, complete_blueprint):
        blueprint_id = blueprint_repository.create("鏡の家", ["鏡"], complete_blueprint, 90)

        result = runner.invoke(cli, ["--db", db_path, "normalize", "--apply"])

        assert "Updated 1/1 blueprints." in result.output
        assert blueprint_repository.get(blueprint_id)["quality_score"] == 100
