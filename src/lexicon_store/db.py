from __future__ import annotations

import contextlib
import sqlite3
import threading
from pathlib import Path
from typing import Any, Generator, Iterable, Sequence

from .errors import StoreConnectionError
from .settings import LexiconSettings, validate_table_name

LIKE_ESCAPE = "!"
# utf8mb4 keys are capped at 767 bytes on older InnoDB row formats.
MARIADB_WORD_LENGTH = 191


class DatabaseEnvironment:
    """SQLite store handle holding the single (word, freq) entries table."""

    dialect = "sqlite"
    driver_errors: tuple[type[BaseException], ...] = (sqlite3.Error,)
    max_word_length: int | None = None

    def __init__(self, path: str | Path = ":memory:", table: str = "entries") -> None:
        self.path = str(path)
        self.table = validate_table_name(table)
        self._lock = threading.RLock()
        self._in_transaction = False
        self._conn: sqlite3.Connection | None = None
        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if self.path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._bootstrap_schema()
        except (sqlite3.Error, OSError) as exc:
            self._discard_connection()
            raise StoreConnectionError(f"unable to open SQLite lexicon at {self.path}: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Schema management
    # ------------------------------------------------------------------ #
    def _bootstrap_schema(self) -> None:
        self.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                word TEXT PRIMARY KEY,
                freq INTEGER NOT NULL DEFAULT 0 CHECK (freq >= 0)
            )
            """
        )

    # ------------------------------------------------------------------ #
    # Dialect-specific statements
    # ------------------------------------------------------------------ #
    @property
    def match_sql(self) -> str:
        return (
            f"SELECT word, freq FROM {self.table} "
            f"WHERE word LIKE ? ESCAPE '{LIKE_ESCAPE}' ORDER BY freq DESC, word ASC"
        )

    @property
    def exact_sql(self) -> str:
        return f"SELECT word, freq FROM {self.table} WHERE word = ?"

    @property
    def upsert_increment_sql(self) -> str:
        return (
            f"INSERT INTO {self.table}(word, freq) VALUES (?, 1) "
            "ON CONFLICT(word) DO UPDATE SET freq = freq + 1"
        )

    @property
    def upsert_add_sql(self) -> str:
        return (
            f"INSERT INTO {self.table}(word, freq) VALUES (?, ?) "
            "ON CONFLICT(word) DO UPDATE SET freq = freq + excluded.freq"
        )

    def upsert_add_params(self, word: str, count: int) -> tuple:
        return (word, count)

    # ------------------------------------------------------------------ #
    # Basic query helpers
    # ------------------------------------------------------------------ #
    @property
    def closed(self) -> bool:
        return self._conn is None

    def describe(self) -> str:
        return f"sqlite://{self.path}#{self.table}"

    def _require_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreConnectionError(f"lexicon store {self.describe()} is closed")
        return self._conn

    def _discard_connection(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    def close(self) -> None:
        with self._lock:
            self._discard_connection()

    def execute(self, sql: str, params: Sequence | None = None) -> None:
        with self._lock:
            conn = self._require_open()
            conn.execute(sql, params or [])
            if not self._in_transaction:
                conn.commit()

    def executemany(self, sql: str, params_seq: Iterable[Sequence]) -> None:
        with self._lock:
            conn = self._require_open()
            conn.executemany(sql, params_seq)
            if not self._in_transaction:
                conn.commit()

    def query(self, sql: str, params: Sequence | None = None) -> list[Any]:
        with self._lock:
            cur = self._require_open().execute(sql, params or [])
            rows = cur.fetchall()
            cur.close()
            return rows

    @contextlib.contextmanager
    def transaction(self) -> Generator["DatabaseEnvironment", None, None]:
        with self._lock:
            conn = self._require_open()
            conn.execute("BEGIN IMMEDIATE")
            self._in_transaction = True
            try:
                yield self
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                self._in_transaction = False


class MariaDBEnvironment(DatabaseEnvironment):
    """MySQL/MariaDB store handle backed by mysql-connector-python."""

    dialect = "mariadb"
    max_word_length = MARIADB_WORD_LENGTH

    def __init__(
        self,
        *,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        table: str = "entries",
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.database = database
        self.table = validate_table_name(table)
        self._lock = threading.RLock()
        self._in_transaction = False
        self._conn = None
        try:
            import mysql.connector  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise StoreConnectionError(
                "mysql-connector-python is required for the mariadb backend. "
                "Install it via 'pip install mysql-connector-python'."
            ) from exc
        self.driver_errors = (mysql.connector.Error,)
        try:
            self._conn = mysql.connector.connect(
                host=host,
                port=port,
                user=user,
                password=password,
                database=database,
                autocommit=True,
            )
            self._bootstrap_schema()
        except mysql.connector.Error as exc:
            self._discard_connection()
            raise StoreConnectionError(f"unable to connect to {self.describe()}: {exc}") from exc

    def _bootstrap_schema(self) -> None:
        self.execute(
            f"""
            CREATE TABLE IF NOT EXISTS `{self.table}` (
                word VARCHAR({MARIADB_WORD_LENGTH}) NOT NULL PRIMARY KEY,
                freq BIGINT UNSIGNED NOT NULL DEFAULT 0
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_bin
            """
        )

    @property
    def match_sql(self) -> str:
        return (
            f"SELECT word, freq FROM `{self.table}` "
            f"WHERE word LIKE %s ESCAPE '{LIKE_ESCAPE}' ORDER BY freq DESC, word ASC"
        )

    @property
    def exact_sql(self) -> str:
        return f"SELECT word, freq FROM `{self.table}` WHERE word = %s"

    @property
    def upsert_increment_sql(self) -> str:
        return (
            f"INSERT INTO `{self.table}` (word, freq) VALUES (%s, 1) "
            "ON DUPLICATE KEY UPDATE freq = freq + 1"
        )

    @property
    def upsert_add_sql(self) -> str:
        return (
            f"INSERT INTO `{self.table}` (word, freq) VALUES (%s, %s) "
            "ON DUPLICATE KEY UPDATE freq = freq + %s"
        )

    def upsert_add_params(self, word: str, count: int) -> tuple:
        return (word, count, count)

    def describe(self) -> str:
        return f"mariadb://{self.user}@{self.host}:{self.port}/{self.database}#{self.table}"

    def execute(self, sql: str, params: Sequence | None = None) -> None:
        with self._lock:
            cursor = self._require_open().cursor()
            try:
                cursor.execute(sql, tuple(params or ()))
            finally:
                cursor.close()

    def executemany(self, sql: str, params_seq: Iterable[Sequence]) -> None:
        with self._lock:
            cursor = self._require_open().cursor()
            try:
                cursor.executemany(sql, [tuple(params) for params in params_seq])
            finally:
                cursor.close()

    def query(self, sql: str, params: Sequence | None = None) -> list[Any]:
        with self._lock:
            cursor = self._require_open().cursor(dictionary=True)
            try:
                cursor.execute(sql, tuple(params or ()))
                return cursor.fetchall()
            finally:
                cursor.close()

    @contextlib.contextmanager
    def transaction(self) -> Generator["MariaDBEnvironment", None, None]:
        with self._lock:
            conn = self._require_open()
            conn.start_transaction()
            self._in_transaction = True
            try:
                yield self
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                self._in_transaction = False


def open_environment(settings: LexiconSettings) -> DatabaseEnvironment:
    """Open the store handle selected by ``settings.backend``."""
    if settings.backend == "sqlite":
        return DatabaseEnvironment(settings.sqlite_path, table=settings.table)
    if settings.backend == "mariadb":
        return MariaDBEnvironment(
            host=settings.mariadb_host,
            port=settings.mariadb_port,
            user=settings.mariadb_user,
            password=settings.mariadb_password,
            database=settings.mariadb_database,
            table=settings.table,
        )
    raise ValueError(f"unsupported lexicon backend {settings.backend!r}")


__all__ = [
    "DatabaseEnvironment",
    "LIKE_ESCAPE",
    "MARIADB_WORD_LENGTH",
    "MariaDBEnvironment",
    "open_environment",
]
