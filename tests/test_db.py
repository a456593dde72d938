from __future__ import annotations

import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import mysql.connector

from lexicon_store import (
    Candidate,
    DatabaseEnvironment,
    Lexicon,
    LexiconSettings,
    MariaDBEnvironment,
    QueryError,
    StoreConnectionError,
    open_environment,
)


class DatabaseEnvironmentTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = DatabaseEnvironment(":memory:", table="words")

    def tearDown(self) -> None:
        self.db.close()

    def test_schema_is_bootstrapped(self) -> None:
        rows = self.db.query("SELECT name FROM sqlite_master WHERE type='table' AND name='words'")
        self.assertEqual(len(rows), 1)
        columns = [row["name"] for row in self.db.query("PRAGMA table_info('words')")]
        self.assertEqual(columns, ["word", "freq"])

    def test_word_is_unique(self) -> None:
        self.db.execute("INSERT INTO words(word, freq) VALUES (?, ?)", ("cat", 1))
        with self.assertRaises(sqlite3.IntegrityError):
            self.db.execute("INSERT INTO words(word, freq) VALUES (?, ?)", ("cat", 2))

    def test_upsert_increment(self) -> None:
        for _ in range(3):
            self.db.execute(self.db.upsert_increment_sql, ("cat",))
        rows = self.db.query(self.db.exact_sql, ("cat",))
        self.assertEqual(rows[0]["freq"], 3)

    def test_upsert_add(self) -> None:
        self.db.executemany(self.db.upsert_add_sql, [("cat", 2), ("cat", 5), ("dog", 0)])
        freqs = {row["word"]: row["freq"] for row in self.db.query("SELECT word, freq FROM words")}
        self.assertEqual(freqs, {"cat": 7, "dog": 0})

    def test_transaction_rolls_back_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with self.db.transaction():
                self.db.execute(self.db.upsert_increment_sql, ("cat",))
                raise RuntimeError("abort")
        self.assertEqual(self.db.query(self.db.exact_sql, ("cat",)), [])

    def test_transaction_commits(self) -> None:
        with self.db.transaction():
            self.db.executemany(self.db.upsert_add_sql, [("cat", 1), ("car", 2)])
        self.assertEqual(len(self.db.query("SELECT word FROM words")), 2)

    def test_close_is_idempotent(self) -> None:
        self.db.close()
        self.db.close()
        self.assertTrue(self.db.closed)
        with self.assertRaises(StoreConnectionError):
            self.db.query(self.db.exact_sql, ("cat",))

    def test_invalid_table_name_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            DatabaseEnvironment(":memory:", table="entries; DROP TABLE entries")

    def test_describe(self) -> None:
        self.assertEqual(self.db.describe(), "sqlite://:memory:#words")


class OpenEnvironmentTests(unittest.TestCase):
    def test_sqlite_backend_creates_parent_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "dir" / "lexicon.sqlite3"
            db = open_environment(LexiconSettings(sqlite_path=str(path)))
            try:
                self.assertEqual(db.dialect, "sqlite")
                self.assertTrue(path.exists())
            finally:
                db.close()

    def test_unknown_backend(self) -> None:
        with self.assertRaises(ValueError):
            open_environment(LexiconSettings(backend="redis"))


class FakeCursor:
    def __init__(self, connection: "FakeConnection", dictionary: bool) -> None:
        self.connection = connection
        self.dictionary = dictionary
        self.closed = False
        self._rows: list = []

    def execute(self, sql: str, params: tuple = ()) -> None:
        if self.connection.fail_with is not None:
            raise self.connection.fail_with
        self.connection.statements.append((" ".join(sql.split()), params))
        self._rows = list(self.connection.rows)

    def executemany(self, sql: str, params_seq: list) -> None:
        if self.connection.fail_with is not None:
            raise self.connection.fail_with
        self.connection.batches.append((" ".join(sql.split()), params_seq))

    def fetchall(self) -> list:
        return self._rows

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Stands in for a mysql.connector connection and records what it is sent."""

    def __init__(self) -> None:
        self.statements: list[tuple[str, tuple]] = []
        self.batches: list[tuple[str, list]] = []
        self.cursors: list[FakeCursor] = []
        self.rows: list[dict] = []
        self.fail_with: Exception | None = None
        self.events: list[str] = []

    def cursor(self, dictionary: bool = False) -> FakeCursor:
        cursor = FakeCursor(self, dictionary)
        self.cursors.append(cursor)
        return cursor

    def start_transaction(self) -> None:
        self.events.append("start")

    def commit(self) -> None:
        self.events.append("commit")

    def rollback(self) -> None:
        self.events.append("rollback")

    def close(self) -> None:
        self.events.append("close")


class MariaDBEnvironmentTests(unittest.TestCase):
    def setUp(self) -> None:
        self.conn = FakeConnection()
        patcher = mock.patch("mysql.connector.connect", return_value=self.conn)
        self.connect = patcher.start()
        self.addCleanup(patcher.stop)
        self.db = MariaDBEnvironment(
            host="db.internal",
            port=3307,
            user="lexicon",
            password="s3cret",
            database="words",
            table="entries",
        )

    def test_connects_with_settings_and_bootstraps_schema(self) -> None:
        self.connect.assert_called_once_with(
            host="db.internal",
            port=3307,
            user="lexicon",
            password="s3cret",
            database="words",
            autocommit=True,
        )
        sql, params = self.conn.statements[0]
        self.assertTrue(sql.startswith("CREATE TABLE IF NOT EXISTS `entries`"))
        self.assertIn("word VARCHAR(191) NOT NULL PRIMARY KEY", sql)
        self.assertEqual(params, ())
        self.assertEqual(self.db.describe(), "mariadb://lexicon@db.internal:3307/words#entries")

    def test_lookup_reads_dictionary_rows(self) -> None:
        self.conn.rows = [{"word": "cat", "freq": 3}, {"word": "cot", "freq": 1}]
        lexicon = Lexicon(db=self.db)
        self.assertEqual(lexicon.get_matches(["C_T"]), [Candidate("cat", 3), Candidate("cot", 1)])
        sql, params = self.conn.statements[-1]
        self.assertEqual(
            sql,
            "SELECT word, freq FROM `entries` WHERE word LIKE %s ESCAPE '!' ORDER BY freq DESC, word ASC",
        )
        self.assertEqual(params, ("c_t",))
        self.assertTrue(self.conn.cursors[-1].dictionary)
        self.assertTrue(all(cursor.closed for cursor in self.conn.cursors))

    def test_exact_lookup_statement(self) -> None:
        self.conn.rows = [{"word": "cat", "freq": 7}]
        self.assertEqual(Lexicon(db=self.db).frequency("Cat"), 7)
        self.assertEqual(
            self.conn.statements[-1],
            ("SELECT word, freq FROM `entries` WHERE word = %s", ("cat",)),
        )

    def test_use_word_sends_atomic_increment(self) -> None:
        Lexicon(db=self.db).use_word("Cat")
        self.assertEqual(
            self.conn.statements[-1],
            (
                "INSERT INTO `entries` (word, freq) VALUES (%s, 1) ON DUPLICATE KEY UPDATE freq = freq + 1",
                ("cat",),
            ),
        )
        self.assertTrue(all(cursor.closed for cursor in self.conn.cursors))

    def test_seed_runs_in_one_transaction(self) -> None:
        applied = Lexicon(db=self.db).seed([("cat", 2), ("Dog", 5)])
        self.assertEqual(applied, 2)
        sql, params = self.conn.batches[-1]
        self.assertEqual(
            sql,
            "INSERT INTO `entries` (word, freq) VALUES (%s, %s) ON DUPLICATE KEY UPDATE freq = freq + %s",
        )
        self.assertEqual(params, [("cat", 2, 2), ("dog", 5, 5)])
        self.assertEqual(self.conn.events, ["start", "commit"])

    def test_transaction_rolls_back_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with self.db.transaction():
                self.db.execute(self.db.upsert_increment_sql, ("cat",))
                raise RuntimeError("abort")
        self.assertEqual(self.conn.events, ["start", "rollback"])

    def test_driver_error_becomes_query_error(self) -> None:
        self.conn.fail_with = mysql.connector.errors.ProgrammingError(msg="bad query")
        lexicon = Lexicon(db=self.db)
        with self.assertRaises(QueryError):
            lexicon.lookup_pattern("c_t")
        self.assertTrue(all(cursor.closed for cursor in self.conn.cursors))

    def test_words_past_key_length_are_rejected_before_writing(self) -> None:
        sent = len(self.conn.statements)
        with self.assertRaises(ValueError):
            Lexicon(db=self.db).use_word("a" * 192)
        self.assertEqual(len(self.conn.statements), sent)
        Lexicon(db=self.db).use_word("a" * 191)
        self.assertEqual(len(self.conn.statements), sent + 1)

    def test_close_is_idempotent(self) -> None:
        self.db.close()
        self.db.close()
        self.assertEqual(self.conn.events, ["close"])
        with self.assertRaises(StoreConnectionError):
            self.db.query(self.db.exact_sql, ("cat",))

    def test_connect_failure_is_wrapped(self) -> None:
        self.connect.side_effect = mysql.connector.errors.InterfaceError(msg="refused")
        with self.assertRaises(StoreConnectionError):
            MariaDBEnvironment(host="h", port=1, user="u", password="", database="d")


if __name__ == "__main__":
    unittest.main()
