"""
Word-frequency lexicon for a decision-making agent.

Patterns with ``_`` placeholders for unknown characters are looked up against a
persisted (word, freq) table; words the agent settles on are recorded so their
frequency grows. See lexicon.Lexicon for the façade.
"""

from .db import DatabaseEnvironment, MariaDBEnvironment, open_environment
from .errors import LexiconError, QueryError, StoreConnectionError, UpdateError
from .lexicon import Candidate, Lexicon
from .settings import LexiconSettings, load_settings

__all__ = [
    "Candidate",
    "DatabaseEnvironment",
    "Lexicon",
    "LexiconError",
    "LexiconSettings",
    "MariaDBEnvironment",
    "QueryError",
    "StoreConnectionError",
    "UpdateError",
    "load_settings",
    "open_environment",
]
