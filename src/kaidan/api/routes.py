"""
Flask route handlers for the Kaidan Blueprint API.

Public endpoints score, search and select blueprints. Everything that
writes, or that sends text to the LLM, sits behind the admin bearer
token.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask
    from flask_limiter import Limiter

from flask import jsonify, request, current_app

from src.kaidan.utils.errors import ValidationError
from src.kaidan.api.helpers import (
    get_service,
    get_json_body,
    get_request_id,
    require_admin,
)

logger = logging.getLogger(__name__)


def register_routes(flask_app: 'Flask', limiter_instance: 'Limiter') -> None:
    """
    Register all application routes.

    Args:
        flask_app: Flask application instance
        limiter_instance: Limiter instance for rate limiting
    """

    @flask_app.route('/api/health')
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok"})

    # ------------------------------------------------------------------
    # Public blueprint endpoints
    # ------------------------------------------------------------------

    @flask_app.route('/api/blueprints/score', methods=['POST'])
    def score_blueprint_preview():
        """
        Score a blueprint without saving it.

        Request Body (JSON):
            - blueprint (dict, required)

        Returns:
            {"score", "deductions", "total_deduction", "totalDeduction",
             "warnings", "quality_tier"}
        """
        data = get_json_body()
        return jsonify(get_service("blueprints").preview_score(data.get("blueprint")))

    @flask_app.route('/api/blueprints/search', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["SEARCH_RATE_LIMIT"])
    def search_blueprints():
        """
        Keyword search over stored blueprints.

        Request Body (JSON):
            - query (str, required)
            - match_count (int, optional): clamped to 1..10, default 3
            - min_quality (int, optional): clamped to 0..100, default 0
        """
        data = get_json_body()
        result = get_service("blueprints").search_blueprints(
            data.get("query"), data.get("match_count"), data.get("min_quality")
        )
        return jsonify({"success": True, **result})

    @flask_app.route('/api/blueprints/select', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["SEARCH_RATE_LIMIT"])
    def select_blueprint():
        """
        Pick the blueprint (and style) that story generation should use for a word.

        Request Body (JSON):
            - word (str, optional): empty picks at random
        """
        data = get_json_body()
        word = data.get("word")
        if word is not None and not isinstance(word, str):
            raise ValidationError("word must be a string.", details={"field": "word"})
        return jsonify(get_service("selection").select_for_generation(word))

    # ------------------------------------------------------------------
    # Admin: ingestion
    # ------------------------------------------------------------------

    @flask_app.route('/api/blueprints/extract', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["EXTRACT_RATE_LIMIT"])
    @require_admin
    def extract_blueprint():
        """
        Extract a blueprint candidate from a story text via the LLM.

        Request Body (JSON):
            - source_text (str, required): 100..50000 characters; never stored

        Returns:
            {"blueprint", "tags", "mode", "chunks", "scoring"}
        """
        data = get_json_body()
        return jsonify(get_service("extraction").extract_blueprint(data.get("source_text")))

    @flask_app.route('/api/blueprints/save', methods=['POST'])
    @require_admin
    def save_blueprint():
        """
        Save a blueprint. The score is recomputed server-side.

        Request Body (JSON):
            - title (str, required)
            - tags (list[str], optional): derived from the blueprint when empty
            - blueprint (dict, required)
            - quality_score (int, optional): advisory only
        """
        data = get_json_body()
        result = get_service("blueprints").save_blueprint(
            data.get("title"),
            data.get("tags"),
            data.get("blueprint"),
            quality_score=data.get("quality_score"),
        )
        return jsonify(result)

    @flask_app.route('/api/blueprints/normalize', methods=['GET'])
    @require_admin
    def normalize_report():
        """Dry-run report of what normalization would change."""
        return jsonify(get_service("blueprints").normalize_report())

    @flask_app.route('/api/blueprints/normalize', methods=['POST'])
    @require_admin
    def normalize_blueprints():
        """Normalize and re-score every stored blueprint."""
        return jsonify(get_service("blueprints").normalize_all())

    # ------------------------------------------------------------------
    # Admin: structural blueprints
    # ------------------------------------------------------------------

    @flask_app.route('/api/admin/blueprints', methods=['GET'])
    @require_admin
    def admin_list_blueprints():
        limit = get_service("validation").validate_id(request.args.get("limit", 100), field="limit")
        return jsonify({"blueprints": get_service("blueprints").list_blueprints(limit=limit)})

    @flask_app.route('/api/admin/blueprints', methods=['PATCH'])
    @require_admin
    def admin_update_blueprint():
        """
        Update a blueprint.

        Request Body (JSON):
            - id (int, required)
            - title, tags, blueprint (optional): a new blueprint is re-scored
            - quality_score (int, optional): explicit override, only applied
              when no blueprint is sent
        """
        data = get_json_body()
        service = get_service("blueprints")
        blueprint_id = get_service("validation").validate_id(get_request_id(data))

        content_fields = {key: data[key] for key in ("title", "tags", "blueprint") if key in data}
        if not content_fields and "quality_score" not in data:
            raise ValidationError("No fields to update.", details={"id": blueprint_id})

        if content_fields:
            if "blueprint" in content_fields and "quality_score" in data:
                logger.info(
                    f"Blueprint {blueprint_id}: ignoring advisory_score={data['quality_score']!r} "
                    "because the body is re-scored"
                )
            record = service.update_blueprint(blueprint_id, **content_fields)
            if "quality_score" in data and "blueprint" not in content_fields:
                record = service.override_quality_score(blueprint_id, data["quality_score"])
        else:
            record = service.override_quality_score(blueprint_id, data["quality_score"])

        return jsonify({"ok": True, "blueprint": record})

    @flask_app.route('/api/admin/blueprints', methods=['DELETE'])
    @require_admin
    def admin_delete_blueprint():
        data = request.get_json(silent=True) or {}
        blueprint_id = get_service("validation").validate_id(get_request_id(data))
        get_service("blueprints").delete_blueprint(blueprint_id)
        return jsonify({"ok": True})

    # ------------------------------------------------------------------
    # Admin: style blueprints
    # ------------------------------------------------------------------

    @flask_app.route('/api/admin/style-blueprints', methods=['GET'])
    @require_admin
    def admin_list_style_blueprints():
        return jsonify({"blueprints": get_service("styles").list_active()})

    @flask_app.route('/api/admin/style-blueprints', methods=['POST'])
    @require_admin
    def admin_create_style_blueprint():
        """
        Create a style blueprint.

        Request Body (JSON):
            - styleData (dict, required)
            - qualityScore (int, optional): default 70

        Returns 400 with violations and warnings when a hard rule fails.
        """
        data = get_json_body()
        result = get_service("styles").create(data.get("styleData"), data.get("qualityScore"))
        return jsonify({"ok": True, **result})

    @flask_app.route('/api/admin/style-blueprints', methods=['PATCH'])
    @require_admin
    def admin_update_style_blueprint():
        """
        Update a style blueprint.

        Request Body (JSON):
            - id (int, required)
            - is_active (bool), quality_score (int), styleData (dict): at least one
        """
        data = get_json_body()
        style_id = get_service("validation").validate_id(get_request_id(data))
        result = get_service("styles").update(
            style_id,
            style_data=data.get("styleData"),
            is_active=data.get("is_active"),
            quality_score=data.get("quality_score"),
        )
        return jsonify({"ok": True, **result})

    @flask_app.route('/api/admin/style-blueprints', methods=['DELETE'])
    @require_admin
    def admin_delete_style_blueprint():
        """Logical delete (is_active = false)."""
        data = request.get_json(silent=True) or {}
        style_id = get_service("validation").validate_id(get_request_id(data))
        get_service("styles").deactivate(style_id)
        return jsonify({"ok": True})

    @flask_app.route('/api/admin/style-blueprints/validate', methods=['POST'])
    @require_admin
    def admin_validate_style_blueprint():
        """Run the style validator without saving."""
        data = get_json_body()
        return jsonify(get_service("styles").validate(data.get("styleData")).to_dict())

    @flask_app.route('/api/admin/style-blueprints/extract', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["EXTRACT_RATE_LIMIT"])
    @require_admin
    def admin_extract_style_blueprint():
        """Extract a style blueprint candidate from a story text via the LLM."""
        data = get_json_body()
        return jsonify(get_service("extraction").extract_style(data.get("source_text")))
