"""ECB feed constants and invariants used across the package."""

from __future__ import annotations

from typing import Final, Iterable

NOT_AVAILABLE: Final[str] = "N/A"
BASE_CURRENCY: Final[str] = "EUR"

# Every code the historical reference-rate feed has published, in feed order.
# Several are defunct (replaced by the euro or redenominated) and only carry
# values for part of the history.
ECB_CURRENCIES: Final[tuple[str, ...]] = (
    "USD",
    "JPY",
    "BGN",
    "CYP",
    "CZK",
    "DKK",
    "EEK",
    "GBP",
    "HUF",
    "LTL",
    "LVL",
    "MTL",
    "PLN",
    "ROL",
    "RON",
    "SEK",
    "SIT",
    "SKK",
    "CHF",
    "ISK",
    "NOK",
    "HRK",
    "RUB",
    "TRL",
    "TRY",
    "AUD",
    "BRL",
    "CAD",
    "CNY",
    "HKD",
    "IDR",
    "ILS",
    "INR",
    "KRW",
    "MXN",
    "MYR",
    "NZD",
    "PHP",
    "SGD",
    "THB",
    "ZAR",
)


def normalise_currencies(codes: Iterable[str]) -> tuple[str, ...]:
    """Upper-case, de-duplicate and validate a tracked currency set.

    Order is preserved so stored column order stays stable. The base
    currency is never a column since every quote is expressed per EUR.
    """

    seen: dict[str, None] = {}
    for code in codes:
        cleaned = code.strip().upper()
        if len(cleaned) != 3 or not cleaned.isalpha():
            raise ValueError(f"Not an ISO 4217 alphabetic code: {code!r}")
        if cleaned == BASE_CURRENCY:
            continue
        seen.setdefault(cleaned, None)
    if not seen:
        raise ValueError("At least one non-EUR currency must be tracked")
    return tuple(seen)


__all__ = [
    "BASE_CURRENCY",
    "ECB_CURRENCIES",
    "NOT_AVAILABLE",
    "normalise_currencies",
]
