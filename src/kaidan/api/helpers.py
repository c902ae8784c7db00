"""
Helpers shared by the route handlers.

Services live in flask_app.extensions["kaidan"] (set up by create_app),
so handlers look them up through current_app instead of importing
module-level singletons.
"""

import hmac
import logging
from functools import wraps
from typing import Any, Dict

from flask import current_app, request

from src.kaidan.utils.errors import UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

EXTENSION_KEY = "kaidan"


def get_service(name: str) -> Any:
    """Return a service registered by create_app, e.g. get_service("blueprints")."""
    return current_app.extensions[EXTENSION_KEY][name]


def get_json_body() -> Dict[str, Any]:
    """
    Parse the request body as a JSON object.

    Raises:
        ValidationError: If the body is missing or not a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def is_admin_request() -> bool:
    """True when the request carries 'Authorization: Bearer <ADMIN_TOKEN>'."""
    expected = current_app.config.get("ADMIN_TOKEN") or ""
    auth = request.headers.get("Authorization", "")
    provided = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_admin(view):
    """Reject the request with 401 unless it carries the admin bearer token."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_admin_request():
            logger.warning(f"Rejected unauthenticated admin request: {request.method} {request.path}")
            raise UnauthorizedError()
        return view(*args, **kwargs)
    return wrapper


def get_request_id(data: Dict[str, Any]) -> Any:
    """Row id from the query string (?id=) or from the JSON body."""
    value = request.args.get("id")
    if value is None:
        value = data.get("id")
    if value is None:
        raise ValidationError("id is required.", details={"field": "id"})
    return value
