"""requests-based downloader for the ECB historical reference-rate archive."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Optional

import requests
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fx_euro.db import FEED_ARCHIVE_URL, FEED_FILENAME
from fx_euro.errors import DownloadFailed
from fx_euro.utils.logger import get_logger

LOGGER = get_logger(__name__)
ARCHIVE_FILENAME = "eurofxref-hist.zip"
DEFAULT_USER_AGENT = "fx-euro (+https://www.ecb.europa.eu/stats/eurofxref/)"


class ECBFeedFetcher:
    """Download ``eurofxref-hist.zip`` and unpack the CSV it contains."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        url: str = FEED_ARCHIVE_URL,
        timeout: int = 30,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.url = url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        if session is None:
            session = requests.Session()
            session.headers.update(
                {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/zip,*/*;q=0.8"}
            )
        self.session = session

    def fetch(self, destination: Path) -> Path:
        """Download and extract the feed into ``destination``."""

        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        archive_path = destination / ARCHIVE_FILENAME
        LOGGER.info("Downloading ECB reference rates from %s", self.url)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=30),
            retry=retry_if_exception_type(requests.RequestException),
            before_sleep=self._log_retry,
        )
        try:
            retrying(self._download, archive_path)
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            raise DownloadFailed(
                f"could not download {self.url} after {self.max_attempts} attempts: {cause}"
            ) from cause
        except OSError as exc:
            raise DownloadFailed(f"could not write {archive_path}: {exc}") from exc

        csv_path = self._extract(archive_path, destination)
        LOGGER.info("Saved ECB feed to %s", csv_path)
        return csv_path

    def _download(self, archive_path: Path) -> None:
        response = self.session.get(self.url, stream=True, timeout=self.timeout)
        try:
            response.raise_for_status()
            with open(archive_path, "wb") as handle:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        handle.write(chunk)
        finally:
            response.close()

    @staticmethod
    def _extract(archive_path: Path, destination: Path) -> Path:
        try:
            with zipfile.ZipFile(archive_path) as archive:
                if FEED_FILENAME not in archive.namelist():
                    raise DownloadFailed(f"{archive_path.name} does not contain {FEED_FILENAME}")
                archive.extract(FEED_FILENAME, path=destination)
        except zipfile.BadZipFile as exc:
            raise DownloadFailed(f"{archive_path.name} is not a valid zip archive") from exc
        except OSError as exc:
            raise DownloadFailed(f"could not unpack {archive_path.name}: {exc}") from exc
        return destination / FEED_FILENAME

    def _log_retry(self, retry_state) -> None:  # type: ignore[no-untyped-def]
        LOGGER.warning(
            "Attempt %s/%s to download ECB rates failed: %s",
            retry_state.attempt_number,
            self.max_attempts,
            retry_state.outcome.exception(),
        )

    def __enter__(self) -> "ECBFeedFetcher":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # pragma: no cover - trivial
        self.session.close()


__all__ = ["ARCHIVE_FILENAME", "ECBFeedFetcher"]
