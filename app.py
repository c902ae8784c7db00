"""Flask web app for the Kaidan Blueprint service."""

# Load environment variables from .env file before other imports
from dotenv import load_dotenv  # type: ignore[import-untyped]

load_dotenv()  # noqa: E402

import os  # noqa: E402
import logging  # noqa: E402
from typing import Any, Dict, Optional  # noqa: E402
from flask import Flask  # noqa: E402
from flask_cors import CORS  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter import Limiter  # type: ignore[import-untyped]  # noqa: E402
from flask_limiter.util import get_remote_address  # type: ignore[import-untyped]  # noqa: E402
from src.kaidan.config import Config  # noqa: E402
from src.kaidan.utils import Database, create_repositories  # noqa: E402
from src.kaidan.utils.errors import register_error_handlers  # noqa: E402
from src.kaidan.utils.llm import BaseLLMClient  # noqa: E402
from src.kaidan.providers import create_provider  # noqa: E402
from src.kaidan.services import (  # noqa: E402
    BlueprintValidationService,
    BlueprintService,
    StyleBlueprintService,
    ExtractionService,
    SelectionService,
)
from src.kaidan.api.helpers import EXTENSION_KEY  # noqa: E402
from src.kaidan.api.routes import register_routes  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO if os.getenv('FLASK_ENV') != 'development' else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def check_llm_setup() -> None:
    """
    Log whether blueprint extraction will be able to reach the LLM.

    The rest of the API works without it; only the extract endpoints
    return 503 when no key is configured.
    """
    if os.getenv("GOOGLE_API_KEY"):
        logger.info("GOOGLE_API_KEY set: blueprint extraction is available")
    else:
        logger.warning(
            "GOOGLE_API_KEY not set: /api/blueprints/extract will return 503 until it is configured"
        )


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    llm_provider: Optional[BaseLLMClient] = None
) -> Flask:
    """
    Build the Flask application.

    Args:
        config_overrides: Values that replace environment settings (tests use
            this for DATABASE_PATH, ADMIN_TOKEN, rate limits)
        llm_provider: Provider instance; when None one is created from the
            configuration on first extraction request

    Returns:
        Configured Flask app with routes, error handlers and services
    """
    flask_app = Flask(__name__)
    flask_app.config.update(Config().to_dict())
    if config_overrides:
        flask_app.config.update(config_overrides)

    CORS(flask_app)

    limiter = Limiter(
        key_func=get_remote_address,
        app=flask_app,
        default_limits=flask_app.config["DEFAULT_RATE_LIMITS"],
        storage_uri=flask_app.config["RATE_LIMIT_STORAGE_URI"],
        headers_enabled=True,
        enabled=flask_app.config.get("RATELIMIT_ENABLED", True),
    )

    database = Database(flask_app.config["DATABASE_PATH"])
    blueprint_repository, style_repository = create_repositories(database)

    def provider_factory() -> BaseLLMClient:
        return create_provider(
            flask_app.config["LLM_PROVIDER"],
            model_name=flask_app.config["LLM_MODEL"],
            temperature=flask_app.config["LLM_TEMPERATURE"],
        )

    style_service = StyleBlueprintService(
        style_repository,
        max_active=flask_app.config["MAX_STYLE_BLUEPRINTS"],
    )
    flask_app.extensions[EXTENSION_KEY] = {
        # The route decorators only hold weak references to the limiter
        "limiter": limiter,
        "database": database,
        "validation": BlueprintValidationService(),
        "blueprints": BlueprintService(
            blueprint_repository,
            priority_threshold=flask_app.config["PRIORITY_QUALITY_THRESHOLD"],
            normal_threshold=flask_app.config["NORMAL_QUALITY_THRESHOLD"],
        ),
        "styles": style_service,
        "extraction": ExtractionService(provider=llm_provider, provider_factory=provider_factory),
        "selection": SelectionService(blueprint_repository, style_service),
    }

    register_routes(flask_app, limiter)
    register_error_handlers(flask_app, debug=os.getenv('FLASK_ENV') == 'development')

    if not flask_app.config["ADMIN_TOKEN"]:
        logger.warning("ADMIN_TOKEN not set: all admin endpoints will return 401")
    if llm_provider is None:
        check_llm_setup()

    logger.info(f"Kaidan Blueprint service ready (database={database.path})")
    return flask_app


if __name__ == '__main__':
    debug_mode = os.getenv('FLASK_ENV') == 'development'
    port = int(os.getenv('PORT', 5000))
    host = os.getenv('HOST', '0.0.0.0')

    create_app().run(debug=debug_mode, host=host, port=port)
