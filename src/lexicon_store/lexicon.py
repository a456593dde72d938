from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .db import LIKE_ESCAPE, DatabaseEnvironment, open_environment
from .errors import QueryError, StoreConnectionError, UpdateError
from .settings import LexiconSettings, load_settings

logger = logging.getLogger(__name__)

# Raised by the drivers while binding a parameter (lone surrogates, ints past 64 bits).
BIND_ERRORS: tuple[type[BaseException], ...] = (UnicodeError, OverflowError, ValueError)


@dataclass(frozen=True)
class Candidate:
    """A word returned by a pattern lookup, with its frequency at query time."""

    word: str
    frequency: int


def to_like_pattern(pattern: str) -> str:
    """
    Lowercase ``pattern`` and turn it into a LIKE expression.

    ``_`` stays the single-character wildcard; ``%`` and the escape character
    itself are matched literally.
    """
    lowered = pattern.lower()
    escaped = lowered.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
    return escaped.replace("%", f"{LIKE_ESCAPE}%")


def _normalize_word(word: str, max_length: int | None = None) -> str:
    normalized = word.lower()
    if not normalized.strip():
        raise ValueError("cannot record an empty word")
    if max_length is not None and len(normalized) > max_length:
        raise ValueError(f"word longer than {max_length} characters: {normalized[:20]!r}...")
    return normalized


class Lexicon:
    """
    Word-frequency store used by the decision-making agent.

    Pattern lookups return candidate words with their usage frequency; once the
    agent settles on a word it reports it through ``use_word`` so the stored
    frequency grows. A store that cannot be reached at construction time leaves
    the lexicon inert instead of raising: lookups come back empty and updates
    raise ``StoreConnectionError``.
    """

    def __init__(
        self,
        settings: LexiconSettings | None = None,
        *,
        db: DatabaseEnvironment | None = None,
    ) -> None:
        self.connection_error: StoreConnectionError | None = None
        self.db: DatabaseEnvironment | None = db
        if self.db is not None:
            self.settings = settings
            return
        self.settings = settings or load_settings()
        try:
            self.db = open_environment(self.settings)
        except StoreConnectionError as exc:
            self.connection_error = exc
            logger.error(
                "lexicon store unreachable (%s): %s; lookups will return no candidates",
                self.settings.describe(),
                exc,
            )

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    @property
    def available(self) -> bool:
        return self.db is not None and not self.db.closed

    def close(self) -> None:
        if self.db is None:
            return
        try:
            self.db.close()
        except self.db.driver_errors as exc:
            logger.warning("error while closing lexicon store %s: %s", self.db.describe(), exc)

    def __enter__(self) -> "Lexicon":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_db(self) -> DatabaseEnvironment:
        if self.db is None:
            raise StoreConnectionError("lexicon store is not connected") from self.connection_error
        if self.db.closed:
            raise StoreConnectionError(f"lexicon store {self.db.describe()} is closed")
        return self.db

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #
    def get_matches(self, patterns: Iterable[str]) -> List[Candidate]:
        """
        Return candidates for every pattern, in pattern order.

        A pattern whose query fails is logged and contributes nothing; the rest
        of the batch is still answered.
        """
        if isinstance(patterns, str):
            patterns = [patterns]
        matches: list[Candidate] = []
        for pattern in patterns:
            try:
                matches.extend(self.lookup_pattern(pattern))
            except (QueryError, StoreConnectionError) as exc:
                logger.error("lexicon lookup failed for pattern %r: %s", pattern, exc)
        return matches

    def lookup_pattern(self, pattern: str) -> List[Candidate]:
        """Strict single-pattern lookup; raises instead of returning an empty list on failure."""
        db = self._require_db()
        try:
            rows = db.query(db.match_sql, (to_like_pattern(pattern),))
        except (*db.driver_errors, *BIND_ERRORS) as exc:
            raise QueryError(f"pattern {pattern!r} could not be queried: {exc}") from exc
        return [Candidate(row["word"], int(row["freq"])) for row in rows]

    def frequency(self, word: str) -> int | None:
        db = self._require_db()
        try:
            rows = db.query(db.exact_sql, (word.lower(),))
        except (*db.driver_errors, *BIND_ERRORS) as exc:
            raise QueryError(f"word {word!r} could not be looked up: {exc}") from exc
        if not rows:
            return None
        return int(rows[0]["freq"])

    # ------------------------------------------------------------------ #
    # Updates
    # ------------------------------------------------------------------ #
    def use_word(self, word: str) -> None:
        """Record that ``word`` was chosen: insert it with frequency 1 or bump it by one."""
        db = self._require_db()
        normalized = _normalize_word(word, db.max_word_length)
        try:
            db.execute(db.upsert_increment_sql, (normalized,))
        except (*db.driver_errors, *BIND_ERRORS) as exc:
            logger.error("failed to record use of %r in %s: %s", normalized, db.describe(), exc)
            raise UpdateError(f"use of {normalized!r} was not recorded: {exc}") from exc
        logger.debug("recorded use of %r", normalized)

    def seed(self, entries: Iterable[Tuple[str, int]]) -> int:
        """Add ``(word, count)`` pairs to the stored frequencies in one transaction."""
        db = self._require_db()
        rows: list[tuple[str, int]] = []
        for word, count in entries:
            count = int(count)
            if count < 0:
                raise ValueError(f"negative frequency {count} for {word!r}")
            rows.append((_normalize_word(word, db.max_word_length), count))
        if not rows:
            return 0
        try:
            with db.transaction():
                db.executemany(
                    db.upsert_add_sql,
                    [db.upsert_add_params(word, count) for word, count in rows],
                )
        except (*db.driver_errors, *BIND_ERRORS) as exc:
            logger.error("failed to seed %d entries into %s: %s", len(rows), db.describe(), exc)
            raise UpdateError(f"seeding {len(rows)} entries failed: {exc}") from exc
        logger.info("seeded %d entries into %s", len(rows), db.describe())
        return len(rows)


__all__ = ["Candidate", "Lexicon", "to_like_pattern"]
