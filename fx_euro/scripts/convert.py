"""Convert an amount between two currencies using the local ECB rate store."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from fx_euro import FxEuro
from fx_euro.errors import (
    FxEuroError,
    InvalidCurrency,
    MalformedExchangeStore,
    NoExchangeRate,
    SameCurrency,
)
from fx_euro.money import to_decimal
from fx_euro.utils.date_range import parse_date
from fx_euro.utils.logger import set_level

__all__ = ["format_result", "main", "parse_args"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("amount", type=to_decimal, help="Amount to convert, e.g. 1000 or 12.50")
    parser.add_argument("--from", dest="from_currency", required=True, help="Source ISO code")
    parser.add_argument("--to", dest="to_currency", required=True, help="Target ISO code")
    parser.add_argument(
        "--on",
        dest="on_date",
        type=parse_date,
        help="Rate date (YYYY-MM-DD); defaults to the latest stored day",
    )
    parser.add_argument(
        "--fallback",
        action="store_true",
        default=False,
        help="Use interpolated rates when the day has no published rate",
    )
    parser.add_argument("--data-dir", dest="data_dir", help="Directory holding the SQLite store")
    parser.add_argument(
        "--sync",
        action="store_true",
        default=False,
        help="Download and ingest the latest ECB feed before converting",
    )
    parser.add_argument("--verbose", action="store_true", default=False, help="Log lookups")
    return parser.parse_args(argv)


def _hint(exc: FxEuroError) -> str:
    if isinstance(exc, NoExchangeRate):
        return f"{exc}. Retry with --fallback to use interpolated rates, or --sync to refresh."
    if isinstance(exc, MalformedExchangeStore):
        return f"{exc}. Run again with --sync to rebuild it from the ECB feed."
    if isinstance(exc, (InvalidCurrency, SameCurrency)):
        return str(exc)
    return f"error: {exc}"


def format_result(amount, source: str, converted, on_date) -> str:  # type: ignore[no-untyped-def]
    return f"{amount} {source} -> {converted.amount} {converted.currency.code} on the date {on_date.isoformat()}"


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        set_level("DEBUG")
    try:
        with FxEuro(args.data_dir) as fx:
            if args.sync:
                fx.sync()
            on_date = args.on_date or fx.latest_date()
            converted = fx.convert(
                args.amount,
                args.from_currency,
                args.to_currency,
                on_date,
                fallback=args.fallback,
            )
    except FxEuroError as exc:
        print(_hint(exc), file=sys.stderr)
        return 1
    source = args.from_currency.strip().upper()
    print(format_result(args.amount, source, converted.rounded(), on_date))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
