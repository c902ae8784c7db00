#!/usr/bin/env python3
"""
CLI tool for local blueprint maintenance.

Scores and validates blueprint JSON files, lists and deletes stored
blueprints, and runs detail-bank normalization without the admin UI.
"""

import json
import sys
from typing import Any, Dict, List

import click
from dotenv import load_dotenv

from src.kaidan.blueprint_scoring import score_blueprint
from src.kaidan.config import Config
from src.kaidan.services import BlueprintService, StyleBlueprintService
from src.kaidan.style_validator import validate_style_blueprint
from src.kaidan.utils import Database, create_repositories
from src.kaidan.utils.errors import APIError

load_dotenv()


def load_json_file(handle) -> Dict[str, Any]:
    """Read a JSON object from an open file, exiting with code 2 on bad input."""
    try:
        data = json.load(handle)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON ({e.msg} at line {e.lineno})", param_hint="FILE")
    if not isinstance(data, dict):
        raise click.BadParameter("expected a JSON object", param_hint="FILE")
    return data


def echo_issues(label: str, issues: List[Dict[str, Any]]) -> None:
    if not issues:
        return
    click.echo(f"{label}:")
    for issue in issues:
        click.echo(f"  - [{issue['rule']}] {issue['detail']}")


@click.group()
@click.option('--db', 'db_path', type=click.Path(dir_okay=False), default=None,
              help='SQLite database path (default: DATABASE_PATH)')
@click.pass_context
def cli(ctx: click.Context, db_path: str) -> None:
    """CLI tool for local blueprint maintenance."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


def get_services(ctx: click.Context):
    """Open the database lazily so file-only commands never touch it."""
    if "services" not in ctx.obj:
        config = Config()
        database = Database(ctx.obj.get("db_path") or config.DATABASE_PATH)
        blueprint_repository, style_repository = create_repositories(database)
        ctx.obj["services"] = (
            BlueprintService(
                blueprint_repository,
                priority_threshold=config.PRIORITY_QUALITY_THRESHOLD,
                normal_threshold=config.NORMAL_QUALITY_THRESHOLD,
            ),
            StyleBlueprintService(style_repository, max_active=config.MAX_STYLE_BLUEPRINTS),
        )
    return ctx.obj["services"]


@cli.command()
@click.argument('blueprint_file', type=click.File('r', encoding='utf-8'))
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
def score(blueprint_file, as_json: bool) -> None:
    """Score a structural blueprint JSON file."""
    result = score_blueprint(load_json_file(blueprint_file))

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    click.echo(f"Score: {result.score}/100 (total deduction {result.total_deduction})")
    for deduction in result.deductions:
        click.echo(f"  -{deduction.points:<3} {deduction.severity:<8} {deduction.field}: {deduction.message}")


@cli.command('validate-style')
@click.argument('style_file', type=click.File('r', encoding='utf-8'))
def validate_style(style_file) -> None:
    """
    Validate a style blueprint JSON file.

    Exits with code 1 when the style has violations, so it can gate a
    batch import.
    """
    result = validate_style_blueprint(load_json_file(style_file)).to_dict()

    click.echo("VALID" if result["is_valid"] else "INVALID")
    echo_issues("Violations", result["violations"])
    echo_issues("Warnings", result["warnings"])
    if not result["is_valid"]:
        sys.exit(1)


@cli.command('list-blueprints')
@click.option('--limit', default=50, type=click.IntRange(1, 1000), help='Maximum rows (default: 50)')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format (default: table)')
@click.pass_context
def list_blueprints(ctx: click.Context, limit: int, output_format: str) -> None:
    """List stored structural blueprints, newest first."""
    blueprint_service, _ = get_services(ctx)
    rows = blueprint_service.list_blueprints(limit=limit)

    if output_format == 'json':
        click.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return
    if not rows:
        click.echo("No blueprints found.")
        return

    click.echo(f"{'ID':<6} {'Score':<6} {'Title':<30} Tags")
    click.echo("-" * 70)
    for row in rows:
        click.echo(f"{row['id']:<6} {row['quality_score']:<6} {row['title'][:30]:<30} {', '.join(row['tags'])}")


@cli.command('delete-blueprint')
@click.argument('blueprint_id', type=int)
@click.option('--confirm/--no-confirm', default=False, help='Skip confirmation prompt')
@click.pass_context
def delete_blueprint(ctx: click.Context, blueprint_id: int, confirm: bool) -> None:
    """Delete a structural blueprint by ID."""
    blueprint_service, _ = get_services(ctx)
    try:
        record = blueprint_service.get_blueprint(blueprint_id)
        if not confirm and not click.confirm(f"Delete blueprint {blueprint_id} ({record['title']})?"):
            click.echo("Cancelled.")
            return
        blueprint_service.delete_blueprint(blueprint_id)
    except APIError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    click.echo(f"Deleted blueprint {blueprint_id}.")


@cli.command('list-styles')
@click.pass_context
def list_styles(ctx: click.Context) -> None:
    """List active style blueprints."""
    _, style_service = get_services(ctx)
    rows = style_service.list_active()
    if not rows:
        click.echo("No active style blueprints.")
        return
    for row in rows:
        click.echo(f"{row['id']:<6} {row['quality_score']:<6} {row['archetype_name']} (used {row['usage_count']}x)")


@cli.command()
@click.option('--apply', 'apply_changes', is_flag=True, help='Write changes (default: report only)')
@click.pass_context
def normalize(ctx: click.Context, apply_changes: bool) -> None:
    """Report or apply detail-bank normalization and re-scoring."""
    blueprint_service, _ = get_services(ctx)

    if apply_changes:
        result = blueprint_service.normalize_all()
        click.echo(f"Updated {result['updated']}/{result['total']} blueprints.")
        for diff in result["diffs"]:
            if diff["violations"]:
                click.echo(f"  {diff['id']}: possible multiple anomalies: {', '.join(diff['violations'])}")
        return

    report = blueprint_service.normalize_report()
    click.echo(f"{report['problematic_count']}/{report['total']} blueprints need attention.")
    for entry in report["problematic"]:
        issues = entry["issues"]
        click.echo(
            f"  {entry['id']} {entry['title']}: score {entry['current']['quality_score']}"
            f" -> {issues['calculated_score']}, remove {len(issues['detail_bank_to_remove'])} details"
        )


if __name__ == '__main__':
    cli()
