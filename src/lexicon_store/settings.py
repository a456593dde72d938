from __future__ import annotations

from dataclasses import dataclass
import os
import re
from pathlib import Path
from typing import Dict

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
BACKENDS = ("sqlite", "mariadb")


def _parse_env_file(path: Path) -> Dict[str, str]:
    """Minimal .env parser (no external dependency required)."""
    data: dict[str, str] = {}
    if not path.exists():
        return data
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def validate_table_name(name: str) -> str:
    """Table names are interpolated into SQL, so only plain identifiers pass."""
    if not _IDENTIFIER.match(name or ""):
        raise ValueError(f"invalid lexicon table name: {name!r}")
    return name


@dataclass(frozen=True)
class LexiconSettings:
    backend: str = "sqlite"
    sqlite_path: str = "var/lexicon.sqlite3"
    table: str = "entries"
    mariadb_host: str = "localhost"
    mariadb_port: int = 3306
    mariadb_user: str = "root"
    mariadb_password: str = ""
    mariadb_database: str = "entries"
    env_file: Path | None = None

    def describe(self) -> str:
        """Connection summary safe to log (never includes the password)."""
        if self.backend == "mariadb":
            return (
                f"mariadb://{self.mariadb_user}@{self.mariadb_host}:{self.mariadb_port}"
                f"/{self.mariadb_database}#{self.table}"
            )
        return f"sqlite://{self.sqlite_path}#{self.table}"


def load_settings(env_path: str | Path = ".env") -> LexiconSettings:
    """Load lexicon settings from .env (if present) + real environment."""
    env_file = Path(env_path)
    file_values = _parse_env_file(env_file)

    def read(key: str, default: str) -> str:
        return os.environ.get(key, file_values.get(key, default))

    backend = read("LEXICON_BACKEND", "sqlite").strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"unsupported LEXICON_BACKEND {backend!r} (expected one of {', '.join(BACKENDS)})")
    table = validate_table_name(read("LEXICON_TABLE", "entries").strip())
    port_raw = read("LEXICON_MARIADB_PORT", "3306").strip()
    try:
        mariadb_port = int(port_raw)
    except ValueError as exc:
        raise ValueError(f"LEXICON_MARIADB_PORT must be an integer, got {port_raw!r}") from exc

    env_file_used = env_file if env_file.exists() else None
    return LexiconSettings(
        backend=backend,
        sqlite_path=read("LEXICON_SQLITE_PATH", "var/lexicon.sqlite3"),
        table=table,
        mariadb_host=read("LEXICON_MARIADB_HOST", "localhost"),
        mariadb_port=mariadb_port,
        mariadb_user=read("LEXICON_MARIADB_USER", "root"),
        mariadb_password=read("LEXICON_MARIADB_PASSWORD", ""),
        mariadb_database=read("LEXICON_MARIADB_DATABASE", "entries"),
        env_file=env_file_used,
    )
