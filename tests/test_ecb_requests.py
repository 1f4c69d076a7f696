from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest
import requests

from fx_euro.errors import DownloadFailed
from fx_euro.ingestion.ecb_requests import ECBFeedFetcher

FEED = "Date,USD,\n1999-01-04,1.1789,\n"


def _zip_bytes(members: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


class _FakeResponse:
    def __init__(self, content: bytes = b"", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)

    def iter_content(self, chunk_size: int = 8192):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


class _FakeSession:
    def __init__(self, *outcomes) -> None:  # type: ignore[no-untyped-def]
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, dict]] = []

    def get(self, url: str, **kwargs):  # type: ignore[no-untyped-def]
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        pass


def test_fetch_extracts_feed(tmp_path: Path) -> None:
    response = _FakeResponse(_zip_bytes({"eurofxref-hist.csv": FEED}))
    session = _FakeSession(response)
    fetcher = ECBFeedFetcher(session, url="https://example.test/feed.zip", timeout=5)

    csv_path = fetcher.fetch(tmp_path / "data")

    assert csv_path == tmp_path / "data" / "eurofxref-hist.csv"
    assert csv_path.read_text(encoding="utf-8") == FEED
    assert session.calls == [("https://example.test/feed.zip", {"stream": True, "timeout": 5})]
    assert response.closed


def test_transient_failures_are_retried(tmp_path: Path) -> None:
    session = _FakeSession(
        requests.ConnectionError("reset"),
        _FakeResponse(status_code=503),
        _FakeResponse(_zip_bytes({"eurofxref-hist.csv": FEED})),
    )
    fetcher = ECBFeedFetcher(session, max_attempts=3, backoff_seconds=0)

    assert fetcher.fetch(tmp_path).exists()
    assert len(session.calls) == 3


def test_exhausted_retries_raise_download_failed(tmp_path: Path) -> None:
    session = _FakeSession(*[_FakeResponse(status_code=500) for _ in range(3)])
    fetcher = ECBFeedFetcher(session, max_attempts=3, backoff_seconds=0)

    with pytest.raises(DownloadFailed) as excinfo:
        fetcher.fetch(tmp_path)

    assert isinstance(excinfo.value.__cause__, requests.HTTPError)
    assert len(session.calls) == 3


def test_corrupt_archive_is_not_retried(tmp_path: Path) -> None:
    session = _FakeSession(_FakeResponse(b"not a zip"))
    fetcher = ECBFeedFetcher(session, backoff_seconds=0)

    with pytest.raises(DownloadFailed):
        fetcher.fetch(tmp_path)

    assert len(session.calls) == 1


def test_archive_without_feed_member(tmp_path: Path) -> None:
    session = _FakeSession(_FakeResponse(_zip_bytes({"README.txt": "hello"})))

    with pytest.raises(DownloadFailed, match="eurofxref-hist.csv"):
        ECBFeedFetcher(session, backoff_seconds=0).fetch(tmp_path)


def test_default_session_sends_user_agent() -> None:
    fetcher = ECBFeedFetcher()

    assert "fx-euro" in fetcher.session.headers["User-Agent"]


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ECBFeedFetcher(_FakeSession(), max_attempts=0)
