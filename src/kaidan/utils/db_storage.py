"""
Database-backed storage for blueprints.

Provides SQLite persistence for structural blueprints and style
blueprints. The connection factory is an explicitly constructed
`Database` object handed to each storage class, so tests and the app
can point at different files without patching module globals.
"""

import json
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Any, List, Union
from datetime import datetime
from contextlib import contextmanager
import logging

from ..models import BlueprintRecord, StyleBlueprintRecord

logger = logging.getLogger(__name__)

# Keyword match weights; a tag hit plus title and anomaly hits tops out at 15
TAG_EXACT_MATCH_SCORE = 10
TAG_PARTIAL_MATCH_SCORE = 5
TITLE_MATCH_SCORE = 3
ANOMALY_MATCH_SCORE = 2
MAX_MATCH_SCORE = 15

RANDOM_PICK_SIMILARITY = 0.5


def _now() -> str:
    return datetime.now().isoformat()


class Database:
    """
    SQLite connection factory.

    Construct once at startup and pass it to the storage classes. A path
    of ":memory:" is not supported because every transaction opens a new
    connection; use a temporary file instead.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def connect(self) -> sqlite3.Connection:
        """Get a database connection."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), check_same_thread=False)
        conn.row_factory = sqlite3.Row  # Enable column access by name
        return conn

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kaidan_blueprints (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    tags TEXT NOT NULL DEFAULT '[]',
                    blueprint TEXT NOT NULL,
                    quality_score INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT,
                    updated_at TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_blueprints_quality
                ON kaidan_blueprints(quality_score DESC)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS style_blueprints (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    archetype_name TEXT NOT NULL,
                    style_data TEXT NOT NULL,
                    quality_score INTEGER NOT NULL DEFAULT 70,
                    usage_count INTEGER NOT NULL DEFAULT 0,
                    last_used_at TEXT,
                    avg_story_rating REAL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT,
                    updated_at TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_style_blueprints_active
                ON style_blueprints(is_active, quality_score DESC)
            """)


class BlueprintStorage:
    """Structural blueprint table access."""

    def __init__(self, database: Database):
        self.db = database
        self.db.init_schema()

    def _deserialize(self, row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        data["tags"] = json.loads(data.get("tags") or "[]")
        data["blueprint"] = json.loads(data["blueprint"])
        return BlueprintRecord.model_validate(data).model_dump()

    def insert(self, title: str, tags: List[str], blueprint: Dict[str, Any], quality_score: int) -> int:
        now = _now()
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO kaidan_blueprints (title, tags, blueprint, quality_score, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (title, json.dumps(tags, ensure_ascii=False),
                 json.dumps(blueprint, ensure_ascii=False), quality_score, now, now)
            )
            blueprint_id = cursor.lastrowid
        logger.debug(f"Inserted blueprint {blueprint_id} (quality={quality_score})")
        return blueprint_id

    def get(self, blueprint_id: int) -> Optional[Dict[str, Any]]:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM kaidan_blueprints WHERE id = ?", (blueprint_id,)
            ).fetchone()
        return self._deserialize(row) if row else None

    def list(self, limit: int = 100, full: bool = False) -> List[Dict[str, Any]]:
        """
        List blueprints, newest first.

        With full=False only the summary columns (no blueprint body) are returned.
        """
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM kaidan_blueprints ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,)
            ).fetchall()
        records = [self._deserialize(row) for row in rows]
        if full:
            return records
        return [
            {key: record[key] for key in ("id", "title", "tags", "quality_score", "created_at")}
            for record in records
        ]

    def list_all(self) -> List[Dict[str, Any]]:
        """Every blueprint in id order, body included."""
        with self.db.transaction() as conn:
            rows = conn.execute("SELECT * FROM kaidan_blueprints ORDER BY id ASC").fetchall()
        return [self._deserialize(row) for row in rows]

    def update(self, blueprint_id: int, updates: Dict[str, Any]) -> bool:
        """
        Update selected columns of a blueprint.

        Args:
            blueprint_id: Row id
            updates: Any of title, tags, blueprint, quality_score

        Returns:
            True if a row was updated, False if the id does not exist
        """
        allowed = {"title", "tags", "blueprint", "quality_score"}
        columns = {key: value for key, value in updates.items() if key in allowed}
        if not columns:
            return False
        for key in ("tags", "blueprint"):
            if key in columns:
                columns[key] = json.dumps(columns[key], ensure_ascii=False)
        columns["updated_at"] = _now()

        assignments = ", ".join(f"{key} = ?" for key in columns)
        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE kaidan_blueprints SET {assignments} WHERE id = ?",
                (*columns.values(), blueprint_id)
            )
            return cursor.rowcount > 0

    def delete(self, blueprint_id: int) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM kaidan_blueprints WHERE id = ?", (blueprint_id,))
            return cursor.rowcount > 0

    def count(self) -> int:
        with self.db.transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM kaidan_blueprints").fetchone()[0]

    def match_by_keyword(self, keyword: str, match_count: int = 3, min_quality: int = 0) -> List[Dict[str, Any]]:
        """
        Rank blueprints by how well keyword matches their tags, title and anomaly.

        Returns:
            Up to match_count search results (row plus similarity in 0..1),
            best match first, ties broken by quality score
        """
        keyword = keyword.strip()
        if not keyword:
            return []

        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM kaidan_blueprints WHERE quality_score >= ?",
                (min_quality,)
            ).fetchall()

        scored = []
        for row in rows:
            record = self._deserialize(row)
            match_score = 0
            tags = record["tags"]
            if keyword in tags:
                match_score += TAG_EXACT_MATCH_SCORE
            elif any(keyword in tag or tag in keyword for tag in tags if tag):
                match_score += TAG_PARTIAL_MATCH_SCORE
            if keyword in record["title"]:
                match_score += TITLE_MATCH_SCORE
            if keyword in str(record["blueprint"].get("anomaly", "")):
                match_score += ANOMALY_MATCH_SCORE
            if match_score > 0:
                record["similarity"] = min(match_score, MAX_MATCH_SCORE) / MAX_MATCH_SCORE
                scored.append(record)

        scored.sort(key=lambda r: (r["similarity"], r["quality_score"]), reverse=True)
        return scored[:match_count]

    def random_blueprint(self, min_quality: int = 30) -> Optional[Dict[str, Any]]:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM kaidan_blueprints WHERE quality_score >= ? ORDER BY RANDOM() LIMIT 1",
                (min_quality,)
            ).fetchone()
        if not row:
            return None
        record = self._deserialize(row)
        record["similarity"] = RANDOM_PICK_SIMILARITY
        return record


class StyleBlueprintStorage:
    """Style blueprint table access."""

    def __init__(self, database: Database):
        self.db = database
        self.db.init_schema()

    def _deserialize(self, row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        data["style_data"] = json.loads(data["style_data"])
        data["is_active"] = bool(data["is_active"])
        return StyleBlueprintRecord.model_validate(data).model_dump()

    def insert(self, style_data: Dict[str, Any], quality_score: int = 70) -> int:
        now = _now()
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO style_blueprints (archetype_name, style_data, quality_score, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (style_data["archetype_name"], json.dumps(style_data, ensure_ascii=False),
                 quality_score, now, now)
            )
            return cursor.lastrowid

    def get(self, style_id: int) -> Optional[Dict[str, Any]]:
        with self.db.transaction() as conn:
            row = conn.execute("SELECT * FROM style_blueprints WHERE id = ?", (style_id,)).fetchone()
        return self._deserialize(row) if row else None

    def list_active(self) -> List[Dict[str, Any]]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM style_blueprints WHERE is_active = 1 ORDER BY quality_score DESC, id ASC"
            ).fetchall()
        return [self._deserialize(row) for row in rows]

    def list_for_selection(self) -> List[Dict[str, Any]]:
        """Active rows ordered least recently used first, then by rating and quality."""
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM style_blueprints
                WHERE is_active = 1
                ORDER BY last_used_at IS NOT NULL, last_used_at ASC,
                         COALESCE(avg_story_rating, 0) DESC, quality_score DESC, id ASC
                """
            ).fetchall()
        return [self._deserialize(row) for row in rows]

    def count_active(self) -> int:
        with self.db.transaction() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM style_blueprints WHERE is_active = 1"
            ).fetchone()[0]

    def active_names(self) -> List[str]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT archetype_name FROM style_blueprints WHERE is_active = 1"
            ).fetchall()
        return [row["archetype_name"] for row in rows]

    def update(self, style_id: int, updates: Dict[str, Any]) -> bool:
        """
        Update selected columns of a style blueprint.

        Args:
            style_id: Row id
            updates: Any of is_active, quality_score, style_data, archetype_name

        Returns:
            True if a row was updated
        """
        allowed = {"is_active", "quality_score", "style_data", "archetype_name"}
        columns = {key: value for key, value in updates.items() if key in allowed}
        if not columns:
            return False
        if "style_data" in columns:
            columns["style_data"] = json.dumps(columns["style_data"], ensure_ascii=False)
        if "is_active" in columns:
            columns["is_active"] = 1 if columns["is_active"] else 0
        columns["updated_at"] = _now()

        assignments = ", ".join(f"{key} = ?" for key in columns)
        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE style_blueprints SET {assignments} WHERE id = ?",
                (*columns.values(), style_id)
            )
            return cursor.rowcount > 0

    def deactivate(self, style_id: int) -> bool:
        return self.update(style_id, {"is_active": False})

    def record_usage(self, style_id: int) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE style_blueprints
                SET usage_count = usage_count + 1, last_used_at = ?
                WHERE id = ?
                """,
                (_now(), style_id)
            )
            return cursor.rowcount > 0
