"""
Error types and JSON error responses for the blueprint API.

Every error leaves the service as ``{"error", "error_code", "details"?}``
so the admin UI can branch on ``error_code`` without parsing messages.
"""

import logging
import traceback
from typing import Optional, Dict, Any, List
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal error while handling the blueprint request."


class APIError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    Args:
        message: Text shown to the admin user
        error_code: Stable machine-readable code
        status_code: HTTP status returned to the client
        details: Extra structured data (violations, ids, limits)
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self, include_traceback: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            payload["details"] = self.details
        if include_traceback:
            payload["traceback"] = traceback.format_exc()
        return payload


class ValidationError(APIError):
    """Malformed request body or blueprint shape."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class StyleValidationError(APIError):
    """A style blueprint broke at least one hard style rule."""

    def __init__(
        self,
        violations: List[Dict[str, Any]],
        warnings: Optional[List[Dict[str, Any]]] = None
    ):
        self.violations = violations
        self.warnings = warnings or []
        joined = " / ".join(v.get("detail", "") for v in violations)
        super().__init__(
            f"Style blueprint rejected: {joined}",
            "STYLE_VALIDATION_FAILED",
            400,
            {"violations": violations, "warnings": self.warnings},
        )


class UnauthorizedError(APIError):
    """Missing or wrong admin bearer token."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED", 401)


class NotFoundError(APIError):

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} '{resource_id}' does not exist.",
            "NOT_FOUND",
            404,
            {"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class CapacityError(APIError):
    """The active style blueprint limit has been reached."""

    def __init__(self, current_count: int, max_count: int):
        super().__init__(
            f"Active style blueprints: {current_count}/{max_count}. "
            "Deactivate an archetype before adding another.",
            "CAPACITY_EXCEEDED",
            409,
            {"current_count": current_count, "max_count": max_count},
        )


class RateLimitError(APIError):

    def __init__(self, retry_after: Optional[int] = None):
        details = {"retry_after": retry_after} if retry_after else {}
        message = "Too many requests."
        if retry_after:
            message += f" Retry in {retry_after}s."
        super().__init__(message, "RATE_LIMIT_EXCEEDED", 429, details)


class ServiceUnavailableError(APIError):
    """The LLM backend (or another dependency) cannot serve the request."""

    def __init__(self, service: str, message: Optional[str] = None):
        super().__init__(
            message or f"{service} is unavailable right now.",
            "SERVICE_UNAVAILABLE",
            503,
            {"service": service},
        )


def create_error_response(error: Exception, include_traceback: bool = False) -> tuple:
    """
    Build ``(json_response, status_code)`` for any exception.

    Client errors are logged as warnings; everything else is logged with
    the stack trace and hidden behind a generic message unless debugging.
    """
    if isinstance(error, APIError):
        if error.status_code < 500:
            logger.warning(f"{error.error_code} on {request.method} {request.path}: {error.message}")
        else:
            logger.error(f"{error.error_code} on {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict(include_traceback)), error.status_code

    logger.error(
        f"Unhandled {type(error).__name__} on {request.method} {request.path}",
        exc_info=True,
    )
    payload = {
        "error": str(error) if include_traceback else GENERIC_ERROR_MESSAGE,
        "error_code": "INTERNAL_ERROR",
        "error_type": type(error).__name__,
    }
    if include_traceback:
        payload["traceback"] = traceback.format_exc()
    return jsonify(payload), 500


def register_error_handlers(app, debug: bool = False):
    """Attach the JSON error handlers to ``app``."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        return create_error_response(error, include_traceback=debug)

    @app.errorhandler(404)
    def handle_not_found(error):
        return create_error_response(NotFoundError("Path", request.path))

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({
            "error": f"{request.method} is not supported on {request.path}.",
            "error_code": "METHOD_NOT_ALLOWED",
        }), 405

    @app.errorhandler(429)
    def handle_rate_limit(error):
        return create_error_response(RateLimitError())

    @app.errorhandler(Exception)
    def handle_generic_exception(error: Exception):
        if isinstance(error, HTTPException):
            return jsonify({
                "error": error.description,
                "error_code": error.name.upper().replace(" ", "_"),
            }), error.code
        return create_error_response(error, include_traceback=debug)
