"""Public interface for the fx_euro package."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Literal

from fx_euro.conversion import ConversionEngine, translate_store_errors
from fx_euro.db import default_db_path, resolve_data_dir
from fx_euro.db.sqlite_manager import PersistenceResult, SQLiteManager
from fx_euro.errors import CurrencyMismatch, NoExchangeRate, SameCurrency
from fx_euro.ingestion.models import RateRow
from fx_euro.ingestion.strategy import FeedFetcher
from fx_euro.interpolation import find_neighbors, interpolate_row
from fx_euro.money import EUR, Currency, Money, get_currency
from fx_euro.utils.date_range import parse_date
from fx_euro.utils.ecb import ECB_CURRENCIES

__all__ = [
    "__version__",
    "ConversionEngine",
    "FxEuro",
    "Money",
    "PersistenceResult",
    "SQLiteManager",
    "seed_ecb_forex",
]

try:
    __version__ = importlib_metadata.version("fx-euro")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


def seed_ecb_forex(*args, **kwargs):
    from fx_euro.seeds.populate_ecb_forex import seed_ecb_forex as _seed_ecb_forex

    return _seed_ecb_forex(*args, **kwargs)


class FxEuro:
    """Package facade over one local ECB rate store."""

    __slots__ = ("data_dir", "manager", "engine")

    # Provide direct access to the package version as a class attribute.
    __version__ = __version__

    def __init__(
        self,
        data_dir: str | Path | None = None,
        *,
        currencies: Iterable[str] | None = None,
        db_path: str | Path | None = None,
    ) -> None:
        """Open (creating when needed) the store kept in ``data_dir``.

        ``data_dir`` defaults to ``$FX_EURO_DATA_DIR`` or ``~/.fx_euro``.
        ``currencies`` is the tracked set; it defaults to every code the ECB
        has published. Passing a wider set to an existing store adds the new
        columns, which read as missing for the days already stored. Syncing
        never rewrites a stored day, so backfilling those currencies needs a
        rebuild: seed the full feed into a fresh ``db_path``.
        """

        self.data_dir = resolve_data_dir(data_dir)
        self.manager = SQLiteManager(
            db_path or default_db_path(self.data_dir),
            currencies=ECB_CURRENCIES if currencies is None else currencies,
        )
        self.engine = ConversionEngine(self.manager)

    def sync(self, fetcher: FeedFetcher | None = None) -> PersistenceResult:
        """Download the latest feed and ingest it; safe to re-run."""

        if fetcher is None:
            from fx_euro.ingestion.ecb_requests import ECBFeedFetcher

            fetcher = ECBFeedFetcher()
        return seed_ecb_forex(data_dir=self.data_dir, manager=self.manager, fetcher=fetcher)

    def seed(
        self, csv_path: str | Path | None = None, *, dry_run: bool = False
    ) -> PersistenceResult:
        """Ingest an already downloaded feed (defaults to the data directory copy)."""

        return seed_ecb_forex(
            csv_path, data_dir=self.data_dir, manager=self.manager, dry_run=dry_run
        )

    def latest_date(self) -> date | None:
        return self.engine.latest_date()

    def _resolve_date(self, on_date: date | str | None) -> date:
        if on_date is not None:
            return parse_date(on_date)
        latest = self.latest_date()
        if latest is None:
            raise NoExchangeRate(date.today())
        return latest

    def convert(
        self,
        amount: Money | Decimal | int | str,
        from_currency: str | Currency,
        to_currency: str | Currency,
        on_date: date | str | None = None,
        *,
        fallback: bool = False,
    ) -> Money:
        """Convert ``amount`` of ``from_currency`` into ``to_currency``.

        ``on_date`` defaults to the most recent stored day. With
        ``fallback=True`` a day without an observed row is answered from an
        interpolated row, synthesised on the fly when none is stored.
        """

        source = get_currency(from_currency)
        target = get_currency(to_currency)
        if isinstance(amount, Money):
            if amount.currency != source:
                raise CurrencyMismatch(
                    f"amount is in {amount.currency.code}, not {source.code}"
                )
            money = amount
        else:
            money = Money.of(amount, source)
        if source == target:
            raise SameCurrency(source.code)
        return self.engine.convert(money, target, self._resolve_date(on_date), fallback=fallback)

    def rate(self, on_date: date | str | None = None, *, fallback: bool = False) -> Dict[str, Any]:
        """Return every tracked quote (currency per EUR) stored for one day."""

        target = self._resolve_date(on_date)
        with translate_store_errors(target):
            with self.manager.reader() as store:
                row = store.get_row(target, observed_only=not fallback)
                if row is None and fallback:
                    row = interpolate_row(store.tracked_currencies, find_neighbors(store, target))
        if row is None:
            raise NoExchangeRate(target)
        return self._snapshot_payload(row)

    def history(
        self,
        from_date: date | str,
        to_date: date | str,
        frequency: Literal["daily", "weekly", "monthly", "yearly"] = "daily",
    ) -> List[Dict[str, Any]]:
        """Return stored snapshots within ``from_date``/``to_date``.

        ``frequency`` controls the granularity. Weekly/monthly/yearly buckets
        return the latest stored day in each interval.
        """

        start = parse_date(from_date)
        end = parse_date(to_date)
        if start > end:
            raise ValueError("from_date must not be after to_date")
        freq = frequency.lower()
        if freq not in {"daily", "weekly", "monthly", "yearly"}:
            raise ValueError("frequency must be one of: daily, weekly, monthly, yearly")
        with translate_store_errors(start):
            rows = {row.rate_date: row for row in self.manager.fetch_range(start, end)}
        selected = self._select_snapshot_dates(sorted(rows), freq)
        return [self._snapshot_payload(rows[day]) for day in selected]

    @staticmethod
    def _snapshot_payload(row: RateRow) -> Dict[str, Any]:
        return {
            "rate_date": row.rate_date,
            "base_currency": EUR.code,
            "provenance": row.provenance.value,
            "rates": {
                code: quote for code, quote in sorted(row.quotes.items()) if quote is not None
            },
        }

    @staticmethod
    def _select_snapshot_dates(dates: List[date], frequency: str) -> List[date]:
        if frequency == "daily":
            return dates
        if frequency == "weekly":
            return FxEuro._last_dates_by_key(
                dates,
                lambda value: (value.isocalendar()[0], value.isocalendar()[1]),
            )
        if frequency == "monthly":
            return FxEuro._last_dates_by_key(dates, lambda value: (value.year, value.month))
        if frequency == "yearly":
            return FxEuro._last_dates_by_key(dates, lambda value: value.year)
        raise ValueError("Unsupported frequency")

    @staticmethod
    def _last_dates_by_key(
        dates: Iterable[date],
        key_builder: Callable[[date], Any],
    ) -> List[date]:
        buckets: Dict[Any, date] = {}
        for day in dates:
            key = key_builder(day)
            if key not in buckets or day > buckets[key]:
                buckets[key] = day
        return sorted(buckets.values())

    def close(self) -> None:
        self.manager.close()

    def __enter__(self) -> "FxEuro":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
