"""Point-in-time currency conversion against the rate store."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from fx_euro.db.sqlite_manager import RateStore, SQLiteManager
from fx_euro.errors import (
    InvalidCurrency,
    MalformedExchangeStore,
    NoExchangeRate,
    NotFound,
    OutOfBounds,
    SameCurrency,
    StoreError,
)
from fx_euro.interpolation import interpolate_on_date
from fx_euro.money import EUR, Currency, Exchange, ExchangeRate, Money, get_currency
from fx_euro.utils.date_range import parse_date
from fx_euro.utils.logger import get_logger

LOGGER = get_logger(__name__)


@contextmanager
def translate_store_errors(on_date: date) -> Iterator[None]:
    """Re-raise store failures as the conversion errors callers branch on."""

    try:
        yield
    except (NotFound, OutOfBounds) as exc:
        raise NoExchangeRate(on_date) from exc
    except (StoreError, SQLAlchemyError) as exc:
        raise MalformedExchangeStore(str(exc)) from exc


class ConversionEngine:
    """Convert money between currencies using EUR-denominated daily quotes.

    Conversions touching EUR use a single stored direction; any other pair is
    bridged through EUR with two multiplications. No cross rate is stored.
    """

    def __init__(self, manager: SQLiteManager) -> None:
        self.manager = manager

    def _resolve(self, code: "str | Currency") -> Currency:
        currency = get_currency(code)
        if currency != EUR and currency.code not in self.manager.currencies:
            raise InvalidCurrency(currency.code)
        return currency

    def _rates(
        self, store: RateStore, on_date: date, codes: list[str], fallback: bool
    ) -> list[ExchangeRate]:
        if not fallback:
            return store.lookup_exact(on_date, codes)
        try:
            return store.lookup_with_fallback(on_date, codes)
        except NotFound:
            return interpolate_on_date(store, on_date, codes)

    def exchange_for(
        self, on_date: date, currencies: list[Currency], *, fallback: bool = False
    ) -> Exchange:
        """Gather every rate for ``currencies`` on ``on_date`` into one lookup."""

        codes = [currency.code for currency in currencies if currency != EUR]
        with translate_store_errors(on_date):
            with self.manager.reader() as store:
                rates = self._rates(store, on_date, codes, fallback)
        LOGGER.debug(
            "Loaded %s rates for %s on %s (fallback=%s)",
            len(rates),
            ", ".join(codes),
            on_date,
            fallback,
        )
        return Exchange.from_rates(rates)

    def convert(
        self,
        from_amount: Money,
        to_currency: "str | Currency",
        on_date: "date | str",
        *,
        fallback: bool = False,
    ) -> Money:
        """Convert ``from_amount`` into ``to_currency`` on ``on_date``.

        Raises :class:`SameCurrency` for an identity conversion,
        :class:`InvalidCurrency` for unknown or untracked codes,
        :class:`NoExchangeRate` when no rate exists that day and
        :class:`MalformedExchangeStore` when stored data cannot be decoded.
        """

        source = from_amount.currency
        target = get_currency(to_currency)
        if source == target:
            raise SameCurrency(source.code)
        source = self._resolve(source)
        target = self._resolve(target)
        rate_date = parse_date(on_date)

        exchange = self.exchange_for(rate_date, [source, target], fallback=fallback)
        if EUR in (source, target):
            return self._apply(exchange, from_amount, target, rate_date)
        in_euro = self._apply(exchange, from_amount, EUR, rate_date)
        return self._apply(exchange, in_euro, target, rate_date)

    @staticmethod
    def _apply(exchange: Exchange, amount: Money, target: Currency, on_date: date) -> Money:
        rate = exchange.get_rate(amount.currency, target)
        if rate is None:
            raise NoExchangeRate(on_date)
        return rate.convert(amount)

    def latest_date(self) -> date | None:
        try:
            return self.manager.latest_date()
        except (StoreError, SQLAlchemyError) as exc:
            raise MalformedExchangeStore(str(exc)) from exc


__all__ = ["ConversionEngine", "translate_store_errors"]
