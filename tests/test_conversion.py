from __future__ import annotations

import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from fx_euro.conversion import ConversionEngine
from fx_euro.errors import (
    InvalidCurrency,
    MalformedExchangeStore,
    NoExchangeRate,
    SameCurrency,
)
from fx_euro.ingestion.models import Provenance, RateRow
from fx_euro.money import Money
from fx_euro.seeds.populate_ecb_forex import seed_ecb_forex

TOLERANCE = Decimal("1e-20")


def observed(day: date, **quotes: str | None) -> RateRow:
    return RateRow(
        rate_date=day,
        provenance=Provenance.OBSERVED,
        quotes={code: None if value is None else Decimal(value) for code, value in quotes.items()},
    )


@pytest.fixture
def engine(manager) -> ConversionEngine:  # type: ignore[no-untyped-def]
    return ConversionEngine(manager)


@pytest.fixture
def seeded_engine(write_feed, manager) -> ConversionEngine:  # type: ignore[no-untyped-def]
    seed_ecb_forex(write_feed(), manager=manager)
    return ConversionEngine(manager)


def test_fallback_interpolates_on_demand(engine, manager) -> None:  # type: ignore[no-untyped-def]
    manager.insert_rows(
        [observed(date(1999, 1, 4), USD="1.1789"), observed(date(1999, 1, 6), USD="1.1790")]
    )

    converted = engine.convert(Money.of("1000", "EUR"), "USD", date(1999, 1, 5), fallback=True)

    assert converted == Money.of("1178.95", "USD")
    # on-demand interpolation is not persisted
    assert len(manager.fetch_range()) == 2


def test_missing_day_without_fallback(engine, manager) -> None:  # type: ignore[no-untyped-def]
    manager.insert_rows(
        [observed(date(1999, 1, 4), USD="1.1789"), observed(date(1999, 1, 6), USD="1.1790")]
    )

    with pytest.raises(NoExchangeRate) as excinfo:
        engine.convert(Money.of("1000", "EUR"), "USD", date(1999, 1, 5))

    assert excinfo.value.on_date == date(1999, 1, 5)


def test_fallback_reads_precomputed_rows(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    converted = seeded_engine.convert(
        Money.of("1000", "EUR"), "USD", "1999-01-09", fallback=True
    )

    assert converted.amount == Decimal("1162.9")
    with pytest.raises(NoExchangeRate):
        seeded_engine.convert(Money.of("1000", "EUR"), "USD", "1999-01-09")


@pytest.mark.parametrize("code", ["EUR", "USD", "JPY", "CYP"])
def test_identity_conversion_fails(engine, code: str) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(SameCurrency):
        engine.convert(Money.of("1000", code), code, date(1999, 1, 4))


@pytest.mark.parametrize("code", ["XYZ", "ARS", "GBP"])
def test_unknown_or_untracked_currency(seeded_engine, code: str) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(InvalidCurrency) as excinfo:
        seeded_engine.convert(Money.of("1", "EUR"), code, date(1999, 1, 4))

    assert excinfo.value.code == code


def test_untracked_source_currency(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(InvalidCurrency):
        seeded_engine.convert(Money.of("1", "GBP"), "USD", date(1999, 1, 4))


def test_eur_endpoint_conversions(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    to_usd = seeded_engine.convert(Money.of("1000", "EUR"), "USD", date(1999, 1, 4))
    to_eur = seeded_engine.convert(Money.of("1178.9", "USD"), "EUR", date(1999, 1, 4))

    assert to_usd == Money.of("1178.9", "USD")
    assert abs(to_eur.amount - Decimal("1000")) < TOLERANCE
    assert to_eur.currency.code == "EUR"


def test_cross_conversion_bridges_through_euro(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    converted = seeded_engine.convert(Money.of("1000", "JPY"), "USD", date(1999, 1, 4))

    expected = Decimal("1000") / Decimal("133.73") * Decimal("1.1789")
    assert converted.currency.code == "USD"
    assert abs(converted.amount - expected) < TOLERANCE


@pytest.mark.parametrize(
    "source, target, on_date",
    [
        ("EUR", "USD", date(1999, 1, 6)),
        ("USD", "JPY", date(1999, 1, 7)),
        ("CYP", "USD", date(1999, 1, 4)),
        ("JPY", "EUR", date(1999, 1, 11)),
    ],
)
def test_round_trip_is_symmetric(seeded_engine, source: str, target: str, on_date: date) -> None:  # type: ignore[no-untyped-def]
    original = Money.of("1234.56", source)

    there = seeded_engine.convert(original, target, on_date)
    back = seeded_engine.convert(there, source, on_date)

    assert abs(back.amount - original.amount) < TOLERANCE


def test_currency_absent_on_the_day(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(NoExchangeRate):
        seeded_engine.convert(Money.of("1", "EUR"), "CYP", date(1999, 1, 5))
    with pytest.raises(NoExchangeRate):
        seeded_engine.convert(Money.of("1", "EUR"), "CYP", date(1999, 1, 5), fallback=True)


def test_dates_outside_the_store(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(NoExchangeRate):
        seeded_engine.convert(Money.of("1", "EUR"), "USD", date(1998, 12, 31), fallback=True)
    with pytest.raises(NoExchangeRate):
        seeded_engine.convert(Money.of("1", "EUR"), "USD", date(1999, 2, 1), fallback=True)


def test_corrupt_store_is_reported(tmp_path, engine, manager) -> None:  # type: ignore[no-untyped-def]
    with sqlite3.connect(tmp_path / "rates.db") as conn:
        conn.execute(
            "INSERT INTO rates (rate_date, interpolated, USD) VALUES ('1999-01-04', 0, 'oops')"
        )

    with pytest.raises(MalformedExchangeStore):
        engine.convert(Money.of("1", "EUR"), "USD", date(1999, 1, 4))


def test_latest_date(seeded_engine) -> None:  # type: ignore[no-untyped-def]
    assert seeded_engine.latest_date() == date(1999, 1, 11)
