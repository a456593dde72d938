from __future__ import annotations


class LexiconError(RuntimeError):
    """Base class for failures raised by the lexicon store."""


class StoreConnectionError(LexiconError):
    """Raised when the store is unreachable, rejects credentials, or was already closed."""


class QueryError(LexiconError):
    """Raised when a pattern or exact-match lookup fails inside the store."""


class UpdateError(LexiconError):
    """Raised when recording a word (or seeding counts) could not be persisted."""


__all__ = ["LexiconError", "QueryError", "StoreConnectionError", "UpdateError"]
