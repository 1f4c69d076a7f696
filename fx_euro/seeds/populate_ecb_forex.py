"""CLI + helpers for populating (seeding) the rate store from the ECB feed."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from fx_euro.db import FEED_FILENAME, default_db_path, resolve_data_dir
from fx_euro.db.sqlite_manager import PersistenceResult, RateStore, SQLiteManager
from fx_euro.errors import IngestionError, StoreError
from fx_euro.ingestion.ecb_csv import ECBCSVParser, ECBFeedParseResult
from fx_euro.ingestion.ecb_requests import ECBFeedFetcher
from fx_euro.ingestion.models import RateRow
from fx_euro.ingestion.strategy import FeedFetcher
from fx_euro.interpolation import precompute
from fx_euro.utils.ecb import ECB_CURRENCIES, NOT_AVAILABLE
from fx_euro.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["seed_ecb_forex", "parse_args", "main"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--csv", dest="csv_path", help="Path to an extracted eurofxref-hist.csv")
    parser.add_argument(
        "--data-dir",
        dest="data_dir",
        help="Directory holding the feed and the SQLite store (default: $FX_EURO_DATA_DIR or ~/.fx_euro)",
    )
    parser.add_argument(
        "--download",
        action="store_true",
        default=False,
        help="Download the latest ECB archive into the data directory first",
    )
    parser.add_argument(
        "--currencies",
        help="Comma separated ISO codes to track (default: every ECB currency)",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=False,
        help="Parse and validate the feed without keeping any change",
    )
    return parser.parse_args(argv)


def _log_phase_result(label: str, result: PersistenceResult) -> None:
    LOGGER.info(
        "%s → inserted %s observed rows, %s interpolated rows, skipped %s (total %s)",
        label,
        result.inserted,
        result.interpolated,
        result.skipped,
        result.total,
    )


def _warn_on_header(parsed: ECBFeedParseResult, tracked: Iterable[str]) -> None:
    tracked = tuple(tracked)
    ignored = [code for code in parsed.currencies if code not in tracked]
    absent = [code for code in tracked if code not in parsed.currencies]
    if ignored:
        LOGGER.warning("Ignoring untracked feed columns: %s", ", ".join(ignored))
    if absent:
        LOGGER.warning("Tracked currencies missing from the feed: %s", ", ".join(absent))


def _backfilled_dates(
    store: RateStore, rows: Sequence[RateRow], prior_latest: date | None
) -> list[date]:
    """Return the staged days older than ``prior_latest`` that the store lacks."""

    if prior_latest is None:
        return []
    older = [row.rate_date for row in rows if row.rate_date < prior_latest]
    if not older:
        return []
    existing = store.existing_dates(min(older), prior_latest)
    return [day for day in older if day not in existing]


def _ingest(store: RateStore, parsed: ECBFeedParseResult) -> PersistenceResult:
    prior_latest = store.latest_date()

    loaded = store.load_staging(parsed.records)
    LOGGER.info("Loaded %s feed rows into staging", loaded)

    normalised = store.normalise_staging(NOT_AVAILABLE)
    LOGGER.info("Normalised %s unavailable cells to NULL", normalised)

    duplicates = store.duplicate_staging_dates()
    if duplicates:
        listed = ", ".join(day.isoformat() for day in duplicates[:5])
        raise IngestionError(f"feed repeats {len(duplicates)} date(s): {listed}")
    rows = store.staged_rows()
    store.drop_staging()

    backfilled = _backfilled_dates(store, rows, prior_latest)
    observed = store.insert_rows(rows)
    _log_phase_result("Observed rows", observed)

    # New days before the previous latest date can open gaps anywhere.
    start = None if backfilled else prior_latest
    bounds = store.observed_bounds()
    if bounds is None:
        return observed
    synthesised = precompute(store, start, bounds[1])
    _log_phase_result("Interpolated rows", synthesised)
    return observed.merge(synthesised)


def seed_ecb_forex(
    csv_path: str | Path | None = None,
    *,
    db_path: str | Path | None = None,
    data_dir: str | Path | None = None,
    currencies: Iterable[str] = ECB_CURRENCIES,
    manager: SQLiteManager | None = None,
    fetcher: FeedFetcher | None = None,
    dry_run: bool = False,
) -> PersistenceResult:
    """Load the ECB feed into the store and fill every gap between observed days.

    The whole load runs in one transaction: a malformed feed, a duplicate date
    or an I/O failure raises :class:`IngestionError` and leaves the store as it
    was. Re-running with a newer feed appends only the new days.
    ``DownloadFailed`` from ``fetcher`` propagates unchanged.
    """

    if fetcher is not None:
        csv_path = fetcher.fetch(resolve_data_dir(data_dir))
    feed_path = Path(csv_path) if csv_path else resolve_data_dir(data_dir) / FEED_FILENAME

    owns_manager = manager is None
    if manager is None:
        manager = SQLiteManager(db_path or default_db_path(data_dir), currencies=currencies)
    try:
        try:
            parsed = ECBCSVParser().parse(feed_path)
        except (OSError, ValueError) as exc:
            raise IngestionError(f"unable to read the feed at {feed_path}: {exc}") from exc
        if not parsed.records:
            raise IngestionError(f"the feed at {feed_path} contains no rows")
        _warn_on_header(parsed, manager.currencies)

        try:
            with manager.transaction(rollback=dry_run) as store:
                result = _ingest(store, parsed)
        except IngestionError:
            raise
        except (StoreError, SQLAlchemyError) as exc:
            raise IngestionError(f"unable to ingest {feed_path}: {exc}") from exc
    finally:
        if owns_manager:
            manager.close()

    if dry_run:
        LOGGER.info("Dry-run enabled; discarded %s validated rows from %s", result.total, feed_path)
    else:
        _log_phase_result(f"Seeding {feed_path.name} finished", result)
    return result


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    currencies = (
        [code for code in args.currencies.split(",") if code.strip()]
        if args.currencies
        else ECB_CURRENCIES
    )
    seed_ecb_forex(
        args.csv_path,
        data_dir=args.data_dir,
        currencies=currencies,
        fetcher=ECBFeedFetcher() if args.download else None,
        dry_run=args.dry_run,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
