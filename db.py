import sqlite3
import logging
from contextlib import contextmanager
from typing import List, Optional, Tuple, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel

from config import YamlConfig
from models import ExerciseTemplate, ImplementInfo, Module, Session
from settings_schema import SettingsSchema, validate_settings

log = logging.getLogger("db")

T = TypeVar("T", bound=BaseModel)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "custom_exercises": (
            """CREATE TABLE custom_exercises (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    exercise_type TEXT NOT NULL,
                    data TEXT NOT NULL
                );""",
            ["id", "name", "exercise_type", "data"],
        ),
        "implements": (
            """CREATE TABLE implements (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    data TEXT NOT NULL
                );""",
            ["id", "name", "data"],
        ),
        "modules": (
            """CREATE TABLE modules (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    module_type TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    data TEXT NOT NULL
                );""",
            ["id", "name", "module_type", "updated_at", "data"],
        ),
        "sessions": (
            """CREATE TABLE sessions (
                    id TEXT PRIMARY KEY,
                    workout_id TEXT,
                    workout_name TEXT NOT NULL,
                    date TEXT NOT NULL,
                    data TEXT NOT NULL
                );""",
            ["id", "workout_id", "workout_name", "date", "data"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        log.info("migrating table %s", table)
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "exercise_type":
                        return "'strength'"
                    if col == "module_type":
                        return "'strength'"
                    if col in ("updated_at", "date"):
                        return "datetime('now')"
                    if col in ("name", "workout_name"):
                        return "''"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class DocumentRepository(BaseRepository):
    """Stores one pydantic aggregate per row as a JSON document.

    Subclasses name the table, the model and the indexed scalar columns
    kept next to the document.
    """

    table: str = ""
    model: Type[BaseModel] = BaseModel
    order_by: str = "rowid"

    def _scalars(self, item) -> dict:
        return {}

    def save(self, item) -> None:
        """Insert or replace ``item``; saving the same value twice is harmless."""
        values = {"id": str(item.id), **self._scalars(item), "data": item.model_dump_json()}
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        updates = ", ".join(f"{c}=excluded.{c}" for c in values if c != "id")
        self.execute(
            f"INSERT INTO {self.table} ({cols}) VALUES ({marks}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates};",
            tuple(values.values()),
        )
        log.debug("saved %s %s", self.table, item.id)

    def delete(self, item: Union[BaseModel, UUID]) -> None:
        item_id = item if isinstance(item, UUID) else item.id
        self.execute(f"DELETE FROM {self.table} WHERE id = ?;", (str(item_id),))
        log.debug("deleted %s %s", self.table, item_id)

    def fetch(self, item_id: UUID):
        rows = self.fetch_all(
            f"SELECT data FROM {self.table} WHERE id = ?;", (str(item_id),)
        )
        return self.model.model_validate_json(rows[0][0]) if rows else None

    def load_all(self) -> list:
        rows = self.fetch_all(f"SELECT data FROM {self.table} ORDER BY {self.order_by};")
        return [self.model.model_validate_json(data) for (data,) in rows]

    def delete_all(self) -> None:
        self._delete_all(self.table)


class CustomExerciseRepository(DocumentRepository):
    """Repository for user-created exercise templates."""

    table = "custom_exercises"
    model = ExerciseTemplate
    order_by = "name COLLATE NOCASE"

    def _scalars(self, item: ExerciseTemplate) -> dict:
        return {"name": item.name, "exercise_type": item.exercise_type.value}

    def load_templates(self) -> List[ExerciseTemplate]:
        return self.load_all()


class ImplementRepository(DocumentRepository):
    """Repository for user-defined implements."""

    table = "implements"
    model = ImplementInfo
    order_by = "name COLLATE NOCASE"

    def _scalars(self, item: ImplementInfo) -> dict:
        return {"name": item.name}

    def load_implements(self) -> List[ImplementInfo]:
        return self.load_all()


class ModuleRepository(DocumentRepository):
    """Repository for workout modules."""

    table = "modules"
    model = Module

    def _scalars(self, item: Module) -> dict:
        return {
            "name": item.name,
            "module_type": item.type.value,
            "updated_at": item.updated_at.isoformat(),
        }

    def load_modules(self) -> List[Module]:
        return self.load_all()


class SessionRepository(DocumentRepository):
    """Repository for completed sessions, ordered by date."""

    table = "sessions"
    model = Session
    order_by = "date, rowid"

    def _scalars(self, item: Session) -> dict:
        return {
            "workout_id": str(item.workout_id) if item.workout_id else None,
            "workout_name": item.workout_name,
            "date": item.date.isoformat(),
        }

    def load_sessions(self) -> List[Session]:
        return self.load_all()

    def fetch_for_workout(self, workout_id: UUID) -> List[Session]:
        rows = self.fetch_all(
            "SELECT data FROM sessions WHERE workout_id = ? ORDER BY date;",
            (str(workout_id),),
        )
        return [Session.model_validate_json(data) for (data,) in rows]


class SettingsRepository(BaseRepository):
    """Repository for application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: Optional[str] = None
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path) if yaml_path else None
        self._init_settings()
        if self._yaml is not None:
            self._sync_from_yaml()
            self._sync_to_yaml()

    def _init_settings(self) -> None:
        defaults = SettingsSchema().model_dump(mode="json")
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, str(value)),
                )

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        return {k: v for k, v in rows}

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        if self._yaml is not None:
            self._yaml.save(self.load_settings().model_dump(mode="json"))

    def get_text(self, key: str, default: str) -> str:
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def set_text(self, key: str, value: str) -> None:
        if key in SettingsSchema.model_fields:
            current = self.load_settings().model_dump(mode="json")
            validate_settings({**current, key: value})
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def load_settings(self) -> SettingsSchema:
        """Return the stored settings validated against ``SettingsSchema``."""
        known = SettingsSchema.model_fields
        data = {k: v for k, v in self._raw_all_settings().items() if k in known}
        return validate_settings(data)


class Repositories:
    """One repository per aggregate, all opened on ``settings.database_path``."""

    def __init__(self, settings: Optional[SettingsSchema] = None) -> None:
        self.settings = settings or SettingsSchema()
        path = self.settings.database_path
        self.custom_exercises = CustomExerciseRepository(path)
        self.implements = ImplementRepository(path)
        self.modules = ModuleRepository(path)
        self.sessions = SessionRepository(path)
        log.debug("opened repositories on %s", path)
