"""
Blueprint repository abstraction layer.

Provides a unified interface for blueprint storage so services depend on
the contract rather than on SQLite. The database handle is passed in
explicitly; nothing here keeps a module-level connection.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Any, List, Tuple
import logging

from .db_storage import Database, BlueprintStorage, StyleBlueprintStorage

logger = logging.getLogger(__name__)


class BlueprintRepository(ABC):
    """
    Abstract interface for structural blueprint storage operations.

    Implementations store the blueprint body, its tags and its
    server-computed quality score.
    """

    @abstractmethod
    def create(self, title: str, tags: List[str], blueprint: Dict[str, Any], quality_score: int) -> int:
        """
        Store a new blueprint.

        Returns:
            The new row id
        """
        pass

    @abstractmethod
    def get(self, blueprint_id: int) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list(self, limit: int = 100, full: bool = False) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_all(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def update(self, blueprint_id: int, updates: Dict[str, Any]) -> bool:
        """
        Update a blueprint.

        Returns:
            True if successful, False if the blueprint does not exist
        """
        pass

    @abstractmethod
    def delete(self, blueprint_id: int) -> bool:
        pass

    @abstractmethod
    def search(self, keyword: str, match_count: int = 3, min_quality: int = 0) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def random(self, min_quality: int = 30) -> Optional[Dict[str, Any]]:
        pass


class StyleBlueprintRepository(ABC):
    """Abstract interface for style blueprint storage operations."""

    @abstractmethod
    def create(self, style_data: Dict[str, Any], quality_score: int = 70) -> int:
        pass

    @abstractmethod
    def get(self, style_id: int) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_active(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_for_selection(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def count_active(self) -> int:
        pass

    @abstractmethod
    def active_names(self) -> List[str]:
        pass

    @abstractmethod
    def update(self, style_id: int, updates: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    def deactivate(self, style_id: int) -> bool:
        pass

    @abstractmethod
    def record_usage(self, style_id: int) -> bool:
        pass


class DatabaseBlueprintRepository(BlueprintRepository):
    """
    Database-backed blueprint repository.

    Wraps BlueprintStorage to provide the repository interface.
    """

    def __init__(self, database: Database):
        self._storage = BlueprintStorage(database)

    def create(self, title: str, tags: List[str], blueprint: Dict[str, Any], quality_score: int) -> int:
        return self._storage.insert(title, tags, blueprint, quality_score)

    def get(self, blueprint_id: int) -> Optional[Dict[str, Any]]:
        return self._storage.get(blueprint_id)

    def list(self, limit: int = 100, full: bool = False) -> List[Dict[str, Any]]:
        return self._storage.list(limit=limit, full=full)

    def list_all(self) -> List[Dict[str, Any]]:
        return self._storage.list_all()

    def update(self, blueprint_id: int, updates: Dict[str, Any]) -> bool:
        return self._storage.update(blueprint_id, updates)

    def delete(self, blueprint_id: int) -> bool:
        return self._storage.delete(blueprint_id)

    def search(self, keyword: str, match_count: int = 3, min_quality: int = 0) -> List[Dict[str, Any]]:
        return self._storage.match_by_keyword(keyword, match_count=match_count, min_quality=min_quality)

    def random(self, min_quality: int = 30) -> Optional[Dict[str, Any]]:
        return self._storage.random_blueprint(min_quality)


class DatabaseStyleBlueprintRepository(StyleBlueprintRepository):
    """Database-backed style blueprint repository."""

    def __init__(self, database: Database):
        self._storage = StyleBlueprintStorage(database)

    def create(self, style_data: Dict[str, Any], quality_score: int = 70) -> int:
        return self._storage.insert(style_data, quality_score)

    def get(self, style_id: int) -> Optional[Dict[str, Any]]:
        return self._storage.get(style_id)

    def list_active(self) -> List[Dict[str, Any]]:
        return self._storage.list_active()

    def list_for_selection(self) -> List[Dict[str, Any]]:
        return self._storage.list_for_selection()

    def count_active(self) -> int:
        return self._storage.count_active()

    def active_names(self) -> List[str]:
        return self._storage.active_names()

    def update(self, style_id: int, updates: Dict[str, Any]) -> bool:
        return self._storage.update(style_id, updates)

    def deactivate(self, style_id: int) -> bool:
        return self._storage.deactivate(style_id)

    def record_usage(self, style_id: int) -> bool:
        return self._storage.record_usage(style_id)


def create_repositories(database: Database) -> Tuple[BlueprintRepository, StyleBlueprintRepository]:
    """
    Create the blueprint and style blueprint repositories for one database.

    Args:
        database: Explicitly constructed Database connection factory

    Returns:
        (blueprint_repository, style_blueprint_repository)
    """
    logger.info(f"Using database blueprint storage at {database.path}")
    return DatabaseBlueprintRepository(database), DatabaseStyleBlueprintRepository(database)
