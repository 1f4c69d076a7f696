"""Abstractions for pluggable feed fetchers."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FeedFetcher(Protocol):
    """Contract for placing the raw ECB feed on local disk.

    Implementations write the uncompressed CSV into ``destination`` under a
    known filename and return its path. Failures surface as
    :class:`fx_euro.errors.DownloadFailed`.
    """

    def fetch(self, destination: Path) -> Path:
        ...  # pragma: no cover - protocol definition


__all__ = ["FeedFetcher"]
