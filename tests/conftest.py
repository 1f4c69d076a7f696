from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from fx_euro.db.sqlite_manager import SQLiteManager

# Newest first with a trailing comma on every line, as the ECB publishes it.
# 1999-01-09 and 1999-01-10 fall on a weekend and are absent.
ECB_FEED = """Date,USD,JPY,CYP,
1999-01-11,1.1569,126.4,0.58187,
1999-01-08,1.1659,130.09,0.58187,
1999-01-07,1.1632,129.43,0.58187,
1999-01-06,1.1743,130.89,0.5823,
1999-01-05,1.179,130.96,N/A,
1999-01-04,1.1789,133.73,0.58231,
"""

TRACKED = ("USD", "JPY", "CYP")


@pytest.fixture
def write_feed(tmp_path: Path) -> Callable[..., Path]:
    def _write(content: str = ECB_FEED, name: str = "eurofxref-hist.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def manager(tmp_path: Path):
    sqlite_manager = SQLiteManager(tmp_path / "rates.db", currencies=TRACKED)
    try:
        yield sqlite_manager
    finally:
        sqlite_manager.close()
