"""
Application configuration.

All settings come from environment variables (a .env file is loaded by
app.py before this module is read). Values are validated on load so a
bad deployment fails at startup rather than on the first request.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

_PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_DB_PATH = _PROJECT_ROOT / "data" / "kaidan.db"


def get_env_int(var_name: str, default: int, min_value: int = 0, max_value: int = 1000) -> int:
    """Safely get and validate an integer environment variable."""
    value = os.getenv(var_name)
    if value is None or value == "":
        return default
    try:
        int_value = int(value)
    except ValueError:
        raise ValueError(f"{var_name} must be a valid integer, got '{value}'")
    if int_value < min_value or int_value > max_value:
        raise ValueError(
            f"{var_name} must be between {min_value} and {max_value}, got {int_value}"
        )
    return int_value


def get_env_str(var_name: str, default: str, allowed_values: Optional[List[str]] = None) -> str:
    """Safely get and validate a string environment variable."""
    value = os.getenv(var_name, default)
    if allowed_values and value not in allowed_values:
        raise ValueError(
            f"{var_name} must be one of {allowed_values}, got '{value}'"
        )
    return value


def get_env_list(var_name: str, default: List[str]) -> List[str]:
    """Read a semicolon separated list, e.g. '200 per day;50 per hour'."""
    value = os.getenv(var_name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(";") if item.strip()]


class Config:
    """Snapshot of the environment, copied into flask_app.config."""

    def __init__(self):
        self.DATABASE_PATH = get_env_str("DATABASE_PATH", str(DEFAULT_DB_PATH))
        # Empty means every admin request is rejected
        self.ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
        self.RATE_LIMIT_STORAGE_URI = get_env_str(
            "RATE_LIMIT_STORAGE_URI", os.getenv("REDIS_URL", "memory://")
        )
        self.DEFAULT_RATE_LIMITS = get_env_list(
            "DEFAULT_RATE_LIMITS", ["200 per day", "50 per hour"]
        )
        self.EXTRACT_RATE_LIMIT = get_env_str("EXTRACT_RATE_LIMIT", "10 per hour")
        self.SEARCH_RATE_LIMIT = get_env_str("SEARCH_RATE_LIMIT", "60 per minute")
        self.PRIORITY_QUALITY_THRESHOLD = get_env_int("PRIORITY_QUALITY_THRESHOLD", 70, 0, 100)
        self.NORMAL_QUALITY_THRESHOLD = get_env_int("NORMAL_QUALITY_THRESHOLD", 50, 0, 100)
        self.MAX_STYLE_BLUEPRINTS = get_env_int("MAX_STYLE_BLUEPRINTS", 100, 1, 10000)
        self.LLM_PROVIDER = get_env_str("LLM_PROVIDER", "gemini", allowed_values=["gemini"])
        self.LLM_MODEL = os.getenv("LLM_MODEL", "gemini-2.5-flash")
        self.LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))

        if self.NORMAL_QUALITY_THRESHOLD > self.PRIORITY_QUALITY_THRESHOLD:
            raise ValueError(
                "NORMAL_QUALITY_THRESHOLD must not exceed PRIORITY_QUALITY_THRESHOLD"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in vars(self).items() if key.isupper()}
