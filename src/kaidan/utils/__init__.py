"""
Utility modules for the Kaidan Blueprint service.

Modules:
- db_storage: SQLite persistence for structural and style blueprints
- repository: storage interfaces handed to the services
- errors: API exception hierarchy and Flask error handlers
- llm: LLM client interface and model reply parsing
- blueprint_prompt_builder: extraction prompts
"""

from .db_storage import Database
from .repository import (
    BlueprintRepository,
    StyleBlueprintRepository,
    create_repositories,
)

__all__ = [
    "Database",
    "BlueprintRepository",
    "StyleBlueprintRepository",
    "create_repositories",
]
