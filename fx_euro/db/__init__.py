"""Locations of the local data store and the downloaded feed."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final

__all__ = [
    "DATA_DIR_ENV_VAR",
    "DB_FILENAME",
    "DEFAULT_DATA_DIR",
    "FEED_ARCHIVE_URL",
    "FEED_FILENAME",
    "default_db_path",
    "resolve_data_dir",
]

DATA_DIR_ENV_VAR: Final[str] = "FX_EURO_DATA_DIR"
FEED_FILENAME: Final[str] = "eurofxref-hist.csv"
DB_FILENAME: Final[str] = "eurofxref-hist.db"
FEED_ARCHIVE_URL: Final[str] = "https://www.ecb.europa.eu/stats/eurofxref/eurofxref-hist.zip"


def _default_data_dir() -> Path:
    configured = os.environ.get(DATA_DIR_ENV_VAR)
    base = Path(configured) if configured else Path.home() / ".fx_euro"
    return base.expanduser().resolve()


def __getattr__(name: str) -> Any:
    """Resolve ``DEFAULT_DATA_DIR`` on each access."""

    if name == "DEFAULT_DATA_DIR":
        return _default_data_dir()
    raise AttributeError(f"module 'fx_euro.db' has no attribute {name}")


def resolve_data_dir(data_dir: str | Path | None = None) -> Path:
    """Return an absolute data directory, creating it when missing."""

    directory = Path(data_dir).expanduser().resolve() if data_dir else _default_data_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def default_db_path(data_dir: str | Path | None = None) -> Path:
    """Return the SQLite file used for ``data_dir`` (or the default directory)."""

    return resolve_data_dir(data_dir) / DB_FILENAME
