"""Linear interpolation of missing days from the nearest observed rows.

Only observed rows are ever used as anchors, so synthesised rows never feed
into other synthesised rows. The x-axis is the proleptic Gregorian ordinal
of each date and the y-axis is the stored ``currency per EUR`` quote.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from fx_euro.db.row_codec import rates_from_quote
from fx_euro.db.sqlite_manager import PersistenceResult, RateStore
from fx_euro.errors import OutOfBounds
from fx_euro.ingestion.models import Neighbors, Provenance, RateRow
from fx_euro.money import Currency, ExchangeRate, get_currency
from fx_euro.utils.date_range import iter_days_between, ordinal_offset
from fx_euro.utils.logger import get_logger

LOGGER = get_logger(__name__)


def _codes(currencies: Iterable[Currency | str]) -> list[str]:
    return [
        currency.code if isinstance(currency, Currency) else currency.strip().upper()
        for currency in currencies
    ]


def find_neighbors(
    store: RateStore,
    target: date,
    currencies: Iterable[Currency | str] | None = None,
) -> Neighbors:
    """Return the closest observed rows strictly before and after ``target``.

    Raises :class:`OutOfBounds` when either side has no observed row.
    """

    if currencies is not None:
        store.require_tracked(_codes(currencies))
    previous = store.nearest_observed(target, before=True)
    following = store.nearest_observed(target, before=False)
    if previous is None or following is None:
        raise OutOfBounds(target)
    return Neighbors(previous=previous, following=following, target=target)


def interpolate_quote(
    previous: Decimal, following: Decimal, x1: int, x2: int, x3: int
) -> Decimal:
    """Return ``y3`` on the line through ``(x1, previous)`` and ``(x2, following)``."""

    if not x1 < x2:
        raise ValueError("interpolation anchors must be in increasing order")
    return previous + (following - previous) * Decimal(x3 - x1) / Decimal(x2 - x1)


def interpolate_quotes(
    currencies: Iterable[Currency | str], neighbors: Neighbors
) -> dict[str, Decimal | None]:
    """Interpolate each currency quoted on both neighbours.

    Currencies missing from either row map to ``None``.
    """

    x1 = ordinal_offset(neighbors.previous.rate_date)
    x2 = ordinal_offset(neighbors.following.rate_date)
    x3 = ordinal_offset(neighbors.target)
    if not x1 < x3 < x2:
        raise ValueError(
            f"{neighbors.target.isoformat()} is not strictly between "
            f"{neighbors.previous.rate_date.isoformat()} and "
            f"{neighbors.following.rate_date.isoformat()}"
        )
    quotes: dict[str, Decimal | None] = {}
    for code in _codes(currencies):
        y1 = neighbors.previous.quote(code)
        y2 = neighbors.following.quote(code)
        if y1 is None or y2 is None:
            quotes[code] = None
            continue
        quotes[code] = interpolate_quote(y1, y2, x1, x2, x3)
    return quotes


def interpolate(
    currencies: Iterable[Currency | str], neighbors: Neighbors
) -> list[ExchangeRate]:
    """Return both directions of every interpolated quote for ``neighbors.target``."""

    rates: list[ExchangeRate] = []
    for code, quote in interpolate_quotes(currencies, neighbors).items():
        if quote is None:
            continue
        rates.extend(rates_from_quote(get_currency(code), quote))
    return rates


def interpolate_row(
    currencies: Iterable[Currency | str], neighbors: Neighbors
) -> RateRow:
    return RateRow(
        rate_date=neighbors.target,
        provenance=Provenance.INTERPOLATED,
        quotes=interpolate_quotes(currencies, neighbors),
    )


def interpolate_on_date(
    store: RateStore, target: date, currencies: Iterable[Currency | str]
) -> list[ExchangeRate]:
    """Synthesise rates for ``target`` without persisting them."""

    codes = _codes(currencies)
    neighbors = find_neighbors(store, target, codes)
    LOGGER.debug(
        "Interpolating %s on %s between %s and %s",
        ", ".join(codes),
        target,
        neighbors.previous.rate_date,
        neighbors.following.rate_date,
    )
    return interpolate(codes, neighbors)


def _anchor(store: RateStore, day: date, *, before: bool) -> RateRow | None:
    row = store.get_row(day, observed_only=True)
    if row is not None:
        return row
    return store.nearest_observed(day, before=before)


def precompute(
    store: RateStore,
    from_exclusive: date | None = None,
    to_exclusive: date | None = None,
    currencies: Sequence[Currency | str] | None = None,
) -> PersistenceResult:
    """Persist one interpolated row for every missing day in the open range.

    The range defaults to the store's first and last observed dates. Days that
    already have a row of either provenance are left alone. Walking the
    observed rows in pairs yields the same anchors as a per-day neighbour
    search, since consecutive observed rows are each other's nearest.
    """

    bounds = store.observed_bounds()
    if bounds is None:
        return PersistenceResult()
    lower = from_exclusive if from_exclusive is not None else bounds[0]
    upper = to_exclusive if to_exclusive is not None else bounds[1]
    if upper - lower <= timedelta(days=1):
        return PersistenceResult()

    codes = list(store.tracked_currencies) if currencies is None else _codes(currencies)
    store.require_tracked(codes)

    first = _anchor(store, lower, before=True)
    last = _anchor(store, upper, before=False)
    if first is None or last is None:
        raise OutOfBounds(lower if first is None else upper)

    existing = store.existing_dates(lower + timedelta(days=1), upper - timedelta(days=1))
    observed = store.observed_rows(first.rate_date, last.rate_date)
    synthesised: list[RateRow] = []
    for previous, following in zip(observed, observed[1:]):
        for day in iter_days_between(previous.rate_date, following.rate_date):
            if not lower < day < upper or day in existing:
                continue
            neighbors = Neighbors(previous=previous, following=following, target=day)
            synthesised.append(interpolate_row(codes, neighbors))

    result = store.insert_rows(synthesised)
    LOGGER.info(
        "Precomputed %s interpolated rows between %s and %s",
        result.interpolated,
        lower,
        upper,
    )
    return result


__all__ = [
    "find_neighbors",
    "interpolate",
    "interpolate_on_date",
    "interpolate_quote",
    "interpolate_quotes",
    "interpolate_row",
    "precompute",
]
