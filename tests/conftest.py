"""
Shared pytest fixtures for test suite.

This module provides common fixtures used across multiple test files:
blueprint and style data, a temporary SQLite database, repositories,
a mocked LLM provider and a Flask test client.
"""

import copy
import json

import pytest
from unittest.mock import MagicMock

from app import create_app
from src.kaidan.utils import Database, create_repositories
from src.kaidan.utils.llm import BaseLLMClient

ADMIN_TOKEN = "test-admin-token"


# ============================================================================
# Blueprint data
# ============================================================================

COMPLETE_BLUEPRINT = {
    "anomaly": "鏡の中にだけ誰かが立っている",
    "normal_rule": "普通の家で家族と暮らしている",
    "irreversible_point": "鏡を割っても姿が消えなかった",
    "reader_understands": "怖いと感じること",
    "reader_cannot_understand": "鏡の中の者の正体",
    "constraints": {
        "no_explanations": True,
        "single_anomaly_only": True,
        "no_emotion_words": True,
        "no_clean_resolution": True,
        "daily_details_min": 1,
    },
    "allowed_subgenres": ["心霊"],
    "detail_bank": ["洗面台", "歯ブラシ", "蛍光灯"],
    "ending_style": "未解決のまま終わる",
}

EMPTY_BLUEPRINT = {
    "anomaly": "",
    "normal_rule": "",
    "irreversible_point": "",
    "reader_understands": "",
    "reader_cannot_understand": "",
    "constraints": {
        "no_explanations": False,
        "single_anomaly_only": False,
        "no_emotion_words": False,
        "no_clean_resolution": False,
        "daily_details_min": 0,
    },
    "allowed_subgenres": [],
    "detail_bank": [],
    "ending_style": "",
}

VALID_STYLE_DATA = {
    "archetype_name": "淡々型",
    "tone_features": ["短文中心", "事実の列挙", "感情を抑える"],
    "narrator_stance": "distant",
    "emotion_level": 0,
    "sentence_style": "short",
    "onomatopoeia_usage": "minimal",
    "dialogue_style": "rare",
    "style_prohibitions": ["感嘆符の多用禁止", "擬音語の連発"],
    "sample_phrases": [
        "その日も廊下の電気は点いていた。",
        "鍵は確かに閉めたはずだった。",
        "翌朝、靴が一足増えていた。",
    ],
}


@pytest.fixture
def complete_blueprint():
    """A blueprint that passes every scoring rule (score 100)."""
    return copy.deepcopy(COMPLETE_BLUEPRINT)


@pytest.fixture
def empty_blueprint():
    """A well-shaped blueprint that fails every scoring rule (score 0)."""
    return copy.deepcopy(EMPTY_BLUEPRINT)


@pytest.fixture
def valid_style_data():
    """A style blueprint with no violations and no warnings."""
    return copy.deepcopy(VALID_STYLE_DATA)


# ============================================================================
# Storage
# ============================================================================

@pytest.fixture
def database(tmp_path):
    """Database backed by a temporary file."""
    db = Database(tmp_path / "test_kaidan.db")
    db.init_schema()
    return db


@pytest.fixture
def repositories(database):
    """(blueprint_repository, style_repository) on the temporary database."""
    return create_repositories(database)


@pytest.fixture
def blueprint_repository(repositories):
    return repositories[0]


@pytest.fixture
def style_repository(repositories):
    return repositories[1]


# ============================================================================
# LLM mocking
# ============================================================================

def make_llm_reply(blueprint=None, tags=None, fenced=True):
    """Build a model reply carrying a blueprint as JSON, optionally in a ```json block."""
    payload = copy.deepcopy(blueprint if blueprint is not None else COMPLETE_BLUEPRINT)
    payload["tags"] = tags if tags is not None else ["鏡", "心霊"]
    body = json.dumps(payload, ensure_ascii=False)
    return f"```json\n{body}\n```" if fenced else body


@pytest.fixture
def mock_llm_provider():
    """LLM provider mock that returns a complete blueprint reply."""
    provider = MagicMock(spec=BaseLLMClient)
    provider.generate.return_value = make_llm_reply()
    return provider


# ============================================================================
# Flask app
# ============================================================================

@pytest.fixture
def app(tmp_path, mock_llm_provider):
    """Flask app on a temporary database with rate limiting disabled."""
    flask_app = create_app(
        {
            "TESTING": True,
            "DATABASE_PATH": str(tmp_path / "app_kaidan.db"),
            "ADMIN_TOKEN": ADMIN_TOKEN,
            "RATELIMIT_ENABLED": False,
        },
        llm_provider=mock_llm_provider,
    )
    return flask_app


@pytest.fixture
def client(app):
    """Create a test client for the Flask app."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    """Authorization header for admin endpoints."""
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
