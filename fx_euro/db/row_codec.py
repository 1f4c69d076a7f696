"""Translate stored quotes into bidirectional exchange rates and back."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping

from fx_euro.errors import MalformedRate, SameCurrency
from fx_euro.ingestion.models import RateRow
from fx_euro.money import EUR, Currency, ExchangeRate, get_currency


def parse_quote(currency: str, raw_text: object) -> Decimal:
    """Parse ``raw_text`` as an exact, strictly positive decimal."""

    if isinstance(raw_text, Decimal):
        value = raw_text
    elif isinstance(raw_text, str):
        try:
            value = Decimal(raw_text.strip())
        except InvalidOperation as exc:
            raise MalformedRate(currency, raw_text) from exc
    else:
        raise MalformedRate(currency, raw_text)
    if not value.is_finite() or value <= 0:
        raise MalformedRate(currency, raw_text)
    return value


def rates_from_quote(
    currency: Currency, quote: Decimal
) -> tuple[ExchangeRate, ExchangeRate]:
    """Expand a ``currency per EUR`` quote into ``(to_eur, from_eur)``."""

    if currency == EUR:
        raise SameCurrency(EUR.code)
    from_eur = ExchangeRate(EUR, currency, quote)
    to_eur = ExchangeRate(currency, EUR, Decimal(1) / quote)
    return to_eur, from_eur


def decode_quote(
    currency: "Currency | str", raw_text: object
) -> tuple[ExchangeRate, ExchangeRate]:
    """Parse a stored cell and return ``(to_eur, from_eur)`` rates."""

    resolved = get_currency(currency)
    return rates_from_quote(resolved, parse_quote(resolved.code, raw_text))


def decode_row(row: RateRow, currencies: Iterable["Currency | str"]) -> list[ExchangeRate]:
    """Return both directions for every requested currency quoted in ``row``.

    Currencies without a value that day (not yet introduced, or discontinued)
    are omitted rather than reported.
    """

    rates: list[ExchangeRate] = []
    for currency in currencies:
        resolved = get_currency(currency)
        if resolved == EUR:
            continue
        quote = row.quote(resolved.code)
        if quote is None:
            continue
        rates.extend(decode_quote(resolved, quote))
    return rates


def encode_quote(quote: Decimal | None) -> str | None:
    """Serialise a quote as plain decimal text (``None`` stays ``None``)."""

    if quote is None:
        return None
    return format(quote, "f")


def decode_cells(
    cells: Mapping[str, object], currencies: Iterable[str]
) -> dict[str, Decimal | None]:
    """Parse the textual currency cells of one stored row."""

    quotes: dict[str, Decimal | None] = {}
    for code in currencies:
        raw = cells.get(code)
        quotes[code] = None if raw is None else parse_quote(code, raw)
    return quotes


def encode_row(row: RateRow, currencies: Iterable[str]) -> dict[str, object]:
    """Build the column mapping persisted for ``row``."""

    values: dict[str, object] = {
        "rate_date": row.rate_date,
        "interpolated": row.provenance.flag,
    }
    for code in currencies:
        values[code] = encode_quote(row.quote(code))
    return values


__all__ = [
    "decode_cells",
    "decode_quote",
    "decode_row",
    "encode_quote",
    "encode_row",
    "parse_quote",
    "rates_from_quote",
]
