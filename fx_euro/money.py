"""Currency, money and exchange-rate value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from functools import total_ordering
from typing import Iterable, Union

from fx_euro.errors import CurrencyMismatch, InvalidCurrency, MalformedRate, SameCurrency


@dataclass(frozen=True, slots=True)
class Currency:
    """An ISO 4217 currency; one instance exists per code."""

    code: str
    minor_units: int
    name: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.code


# (code, minor units, name). EUR plus every code the ECB feed has published,
# and the other active ISO 4217 codes callers are likely to ask about.
_ISO_4217: tuple[tuple[str, int, str], ...] = (
    ("EUR", 2, "Euro"),
    ("USD", 2, "US Dollar"),
    ("JPY", 0, "Yen"),
    ("BGN", 2, "Bulgarian Lev"),
    ("CYP", 2, "Cyprus Pound"),
    ("CZK", 2, "Czech Koruna"),
    ("DKK", 2, "Danish Krone"),
    ("EEK", 2, "Kroon"),
    ("GBP", 2, "Pound Sterling"),
    ("HUF", 2, "Forint"),
    ("LTL", 2, "Lithuanian Litas"),
    ("LVL", 2, "Latvian Lats"),
    ("MTL", 2, "Maltese Lira"),
    ("PLN", 2, "Zloty"),
    ("ROL", 2, "Old Leu"),
    ("RON", 2, "Romanian Leu"),
    ("SEK", 2, "Swedish Krona"),
    ("SIT", 2, "Tolar"),
    ("SKK", 2, "Slovak Koruna"),
    ("CHF", 2, "Swiss Franc"),
    ("ISK", 0, "Iceland Krona"),
    ("NOK", 2, "Norwegian Krone"),
    ("HRK", 2, "Kuna"),
    ("RUB", 2, "Russian Ruble"),
    ("TRL", 0, "Old Turkish Lira"),
    ("TRY", 2, "Turkish Lira"),
    ("AUD", 2, "Australian Dollar"),
    ("BRL", 2, "Brazilian Real"),
    ("CAD", 2, "Canadian Dollar"),
    ("CNY", 2, "Yuan Renminbi"),
    ("HKD", 2, "Hong Kong Dollar"),
    ("IDR", 2, "Rupiah"),
    ("ILS", 2, "New Israeli Sheqel"),
    ("INR", 2, "Indian Rupee"),
    ("KRW", 0, "Won"),
    ("MXN", 2, "Mexican Peso"),
    ("MYR", 2, "Malaysian Ringgit"),
    ("NZD", 2, "New Zealand Dollar"),
    ("PHP", 2, "Philippine Peso"),
    ("SGD", 2, "Singapore Dollar"),
    ("THB", 2, "Baht"),
    ("ZAR", 2, "Rand"),
    ("AED", 2, "UAE Dirham"),
    ("ARS", 2, "Argentine Peso"),
    ("BHD", 3, "Bahraini Dinar"),
    ("CLP", 0, "Chilean Peso"),
    ("COP", 2, "Colombian Peso"),
    ("EGP", 2, "Egyptian Pound"),
    ("KWD", 3, "Kuwaiti Dinar"),
    ("MAD", 2, "Moroccan Dirham"),
    ("NGN", 2, "Naira"),
    ("PEN", 2, "Sol"),
    ("PKR", 2, "Pakistan Rupee"),
    ("QAR", 2, "Qatari Rial"),
    ("RSD", 2, "Serbian Dinar"),
    ("SAR", 2, "Saudi Riyal"),
    ("TWD", 2, "New Taiwan Dollar"),
    ("UAH", 2, "Hryvnia"),
    ("VND", 0, "Dong"),
)

_REGISTRY: dict[str, Currency] = {
    code: Currency(code=code, minor_units=minor_units, name=name)
    for code, minor_units, name in _ISO_4217
}

EUR: Currency = _REGISTRY["EUR"]


def find_currency(code: str) -> Currency | None:
    """Return the interned currency for ``code`` or ``None`` when unknown."""

    return _REGISTRY.get(code.strip().upper())


def get_currency(code: "str | Currency") -> Currency:
    """Resolve a code (or pass a currency through), raising when unknown."""

    if isinstance(code, Currency):
        return code
    currency = find_currency(code)
    if currency is None:
        raise InvalidCurrency(code.strip().upper())
    return currency


AmountLike = Union[Decimal, int, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Coerce ``value`` to a finite :class:`Decimal` without going through float."""

    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError("amounts must be Decimal, int or str, not float")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"not a finite amount: {value!r}")
    return result


@total_ordering
@dataclass(frozen=True, slots=True)
class Money:
    """A decimal amount in a single currency.

    Arithmetic keeps full decimal precision; :meth:`rounded` applies the
    currency's minor units.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))

    @classmethod
    def of(cls, amount: AmountLike, currency: "str | Currency") -> "Money":
        return cls(to_decimal(amount), get_currency(currency))

    def _check(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(
                f"cannot combine {self.currency.code} with {other.currency.code}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Decimal | int) -> "Money":
        return Money(self.amount * to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def __truediv__(self, divisor: Decimal | int) -> "Money":
        return Money(self.amount / to_decimal(divisor), self.currency)

    def __neg__(self) -> "Money":
        return Money(-self.amount, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount < other.amount

    def rounded(self) -> "Money":
        """Return the amount quantized to the currency's minor units."""

        exponent = Decimal(1).scaleb(-self.currency.minor_units)
        return Money(self.amount.quantize(exponent, rounding=ROUND_HALF_EVEN), self.currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """One unit of ``base`` buys ``factor`` units of ``counter``."""

    base: Currency
    counter: Currency
    factor: Decimal

    def __post_init__(self) -> None:
        if self.base == self.counter:
            raise SameCurrency(self.base.code)
        if not isinstance(self.factor, Decimal) or not self.factor.is_finite():
            raise MalformedRate(self.counter.code, self.factor)
        if self.factor <= 0:
            raise MalformedRate(self.counter.code, self.factor)

    def convert(self, money: Money) -> Money:
        """Convert ``money`` (in ``base``) into ``counter``."""

        if money.currency != self.base:
            raise CurrencyMismatch(
                f"rate converts {self.base.code}, got {money.currency.code}"
            )
        return Money(money.amount * self.factor, self.counter)

    def inverse(self) -> "ExchangeRate":
        return ExchangeRate(self.counter, self.base, Decimal(1) / self.factor)

    @property
    def pair(self) -> str:
        return f"{self.base.code}/{self.counter.code}"


class Exchange:
    """Directional lookup of the rates gathered for a single request."""

    __slots__ = ("_rates",)

    def __init__(self) -> None:
        self._rates: dict[tuple[str, str], ExchangeRate] = {}

    @classmethod
    def from_rates(cls, rates: Iterable[ExchangeRate]) -> "Exchange":
        exchange = cls()
        for rate in rates:
            exchange.set_rate(rate)
        return exchange

    def set_rate(self, rate: ExchangeRate) -> None:
        self._rates[(rate.base.code, rate.counter.code)] = rate

    def get_rate(self, base: Currency, counter: Currency) -> ExchangeRate | None:
        return self._rates.get((base.code, counter.code))

    def __len__(self) -> int:
        return len(self._rates)


__all__ = [
    "EUR",
    "Currency",
    "Exchange",
    "ExchangeRate",
    "Money",
    "find_currency",
    "get_currency",
    "to_decimal",
]
