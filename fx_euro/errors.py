"""Exception hierarchy for fx_euro.

Every failure cause has its own class so callers can branch on the type
instead of parsing messages.
"""

from __future__ import annotations

from datetime import date


class FxEuroError(Exception):
    """Base class for all fx_euro errors."""


class DownloadFailed(FxEuroError):
    """The feed fetcher could not place the raw feed in the data directory."""


class IngestionError(FxEuroError):
    """The feed could not be loaded; the store was left unchanged."""


class StoreError(FxEuroError):
    """The rate store is unreadable or was written by an incompatible version."""


class NotFound(StoreError, LookupError):
    """No row exists for the date, or a requested currency is absent on it."""

    def __init__(self, rate_date: date, currency: str | None = None) -> None:
        self.rate_date = rate_date
        self.currency = currency
        if currency is None:
            message = f"no rates recorded on {rate_date.isoformat()}"
        else:
            message = f"no {currency} rate recorded on {rate_date.isoformat()}"
        super().__init__(message)


class OutOfBounds(StoreError):
    """The date has no observed row before it or none after it."""

    def __init__(self, rate_date: date) -> None:
        self.rate_date = rate_date
        super().__init__(
            f"{rate_date.isoformat()} is outside the range of observed rates"
        )


class MalformedRate(StoreError, ValueError):
    """A stored or fed quote is not a strictly positive decimal."""

    def __init__(self, currency: str, raw_value: object) -> None:
        self.currency = currency
        self.raw_value = raw_value
        super().__init__(f"malformed {currency} rate: {raw_value!r}")


class CurrencyMismatch(FxEuroError, ValueError):
    """Money arithmetic was attempted across two currencies."""


class ConversionError(FxEuroError):
    """Base class for failures reported by the conversion engine."""


class NoExchangeRate(ConversionError):
    """No usable rate exists on the requested date."""

    def __init__(self, on_date: date) -> None:
        self.on_date = on_date
        super().__init__(
            f"could not find the relevant exchange rate on date {on_date.isoformat()}"
        )


class InvalidCurrency(ConversionError):
    """The code is not ISO 4217 or is not tracked by the store."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(
            f"either {code} is not a valid currency, or it's not recorded by the "
            "European Central Bank"
        )


class SameCurrency(ConversionError):
    """A conversion or rate between a currency and itself was requested."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"there's no need to convert anything, both sides are {code}")


class MalformedExchangeStore(ConversionError):
    """The store returned data that could not be decoded."""

    def __init__(self, detail: str | None = None) -> None:
        message = "the exchange store contains malformed data"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


__all__ = [
    "ConversionError",
    "CurrencyMismatch",
    "DownloadFailed",
    "FxEuroError",
    "IngestionError",
    "InvalidCurrency",
    "MalformedExchangeStore",
    "MalformedRate",
    "NoExchangeRate",
    "NotFound",
    "OutOfBounds",
    "SameCurrency",
    "StoreError",
]
