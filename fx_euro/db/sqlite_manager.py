"""Persistence helpers for fx_euro (SQLAlchemy Core over SQLite)."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Index,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    insert,
    inspect,
    select,
    text,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from fx_euro.db import default_db_path
from fx_euro.db.row_codec import decode_cells, decode_row, encode_row
from fx_euro.errors import NotFound, StoreError
from fx_euro.ingestion.models import FeedRecord, Provenance, RateRow
from fx_euro.money import Currency, ExchangeRate
from fx_euro.utils.ecb import ECB_CURRENCIES, NOT_AVAILABLE, normalise_currencies
from fx_euro.utils.logger import get_logger

LOGGER = get_logger(__name__)

SCHEMA_VERSION = 1
RATES_TABLE = "rates"
STAGING_TABLE = "rates_staging"
META_TABLE = "store_meta"
DATE_PROVENANCE_INDEX = "ix_rates_date_interpolated"


@dataclass(slots=True)
class PersistenceResult:
    """How many rows a write inserted, synthesised or skipped on conflict."""

    inserted: int = 0
    interpolated: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        """Return the total number of rows written."""

        return self.inserted + self.interpolated

    def merge(self, other: "PersistenceResult") -> "PersistenceResult":
        return PersistenceResult(
            inserted=self.inserted + other.inserted,
            interpolated=self.interpolated + other.interpolated,
            skipped=self.skipped + other.skipped,
        )


class RateSchema:
    """Table definitions for one tracked currency set."""

    def __init__(self, currencies: Sequence[str]) -> None:
        self.currencies: tuple[str, ...] = tuple(currencies)
        self.metadata = MetaData()
        self.rates = Table(
            RATES_TABLE,
            self.metadata,
            Column("rate_date", Date, primary_key=True),
            Column("interpolated", Boolean, nullable=False, default=False),
            *(Column(code, Text, nullable=True) for code in self.currencies),
        )
        Index(DATE_PROVENANCE_INDEX, self.rates.c.rate_date, self.rates.c.interpolated)
        self.meta = Table(
            META_TABLE,
            self.metadata,
            Column("key", String, primary_key=True),
            Column("value", String, nullable=False),
        )
        # Kept out of ``metadata`` so ``create_all`` never builds it; the
        # ingestion pipeline creates and drops it around each load.
        self.staging = Table(
            STAGING_TABLE,
            MetaData(),
            Column("rate_date", Text, nullable=False),
            *(Column(code, Text, nullable=True) for code in self.currencies),
        )


def _install_transactional_ddl(engine: Engine) -> None:
    """Let SQLAlchemy, not pysqlite, emit BEGIN so DDL joins the transaction."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:  # type: ignore[no-untyped-def]
        connection.exec_driver_sql("BEGIN")


def _normalise_rate_date(value: object) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value))


def _codes(currencies: Iterable[Currency | str]) -> list[str]:
    return [c.code if isinstance(c, Currency) else c.strip().upper() for c in currencies]


class RateStore:
    """Date-keyed access to stored rate rows through one connection."""

    def __init__(self, connection: Connection, schema: RateSchema) -> None:
        self.connection = connection
        self.schema = schema

    @property
    def tracked_currencies(self) -> tuple[str, ...]:
        return self.schema.currencies

    def is_tracked(self, code: str) -> bool:
        return code in self.schema.currencies

    def require_tracked(self, codes: Iterable[str]) -> None:
        for code in codes:
            if code != "EUR" and not self.is_tracked(code):
                raise StoreError(f"{code} is not tracked by this store")

    def _to_row(self, mapping: Mapping[str, Any]) -> RateRow:
        return RateRow(
            rate_date=_normalise_rate_date(mapping["rate_date"]),
            provenance=Provenance.from_flag(bool(mapping["interpolated"])),
            quotes=decode_cells(mapping, self.tracked_currencies),
        )

    def _rows(self, stmt) -> list[RateRow]:  # type: ignore[no-untyped-def]
        return [self._to_row(mapping) for mapping in self.connection.execute(stmt).mappings()]

    def _first(self, stmt) -> RateRow | None:  # type: ignore[no-untyped-def]
        mapping = self.connection.execute(stmt.limit(1)).mappings().first()
        return None if mapping is None else self._to_row(mapping)

    # -- date bounds ---------------------------------------------------------

    def latest_date(self) -> date | None:
        """Return the most recent stored date of any provenance."""

        value = self.connection.execute(select(func.max(self.schema.rates.c.rate_date))).scalar()
        return None if value is None else _normalise_rate_date(value)

    def first_date(self) -> date | None:
        value = self.connection.execute(select(func.min(self.schema.rates.c.rate_date))).scalar()
        return None if value is None else _normalise_rate_date(value)

    def observed_bounds(self) -> tuple[date, date] | None:
        """Return the first and last observed dates, or ``None`` when empty."""

        rates = self.schema.rates
        stmt = select(func.min(rates.c.rate_date), func.max(rates.c.rate_date)).where(
            rates.c.interpolated.is_(False)
        )
        first, last = self.connection.execute(stmt).one()
        if first is None or last is None:
            return None
        return _normalise_rate_date(first), _normalise_rate_date(last)

    # -- point lookups -------------------------------------------------------

    def get_row(self, rate_date: date, *, observed_only: bool = False) -> RateRow | None:
        rates = self.schema.rates
        stmt = select(rates).where(rates.c.rate_date == rate_date)
        if observed_only:
            stmt = stmt.where(rates.c.interpolated.is_(False))
        return self._first(stmt)

    def lookup_exact(
        self, rate_date: date, currencies: Iterable[Currency | str]
    ) -> list[ExchangeRate]:
        """Return rates from the observed row on ``rate_date``.

        Raises :class:`NotFound` when there is no observed row, or when any
        requested currency has no value on it.
        """

        codes = [code for code in _codes(currencies) if code != "EUR"]
        self.require_tracked(codes)
        row = self.get_row(rate_date, observed_only=True)
        if row is None:
            raise NotFound(rate_date)
        for code in codes:
            if row.quote(code) is None:
                raise NotFound(rate_date, code)
        return decode_row(row, codes)

    def lookup_with_fallback(
        self, rate_date: date, currencies: Iterable[Currency | str]
    ) -> list[ExchangeRate]:
        """Return rates from the row on ``rate_date`` of either provenance.

        Raises :class:`NotFound` only when no row exists at all; currencies
        without a value that day are left out of the result.
        """

        codes = [code for code in _codes(currencies) if code != "EUR"]
        self.require_tracked(codes)
        row = self.get_row(rate_date)
        if row is None:
            raise NotFound(rate_date)
        return decode_row(row, codes)

    def nearest_observed(self, rate_date: date, *, before: bool) -> RateRow | None:
        """Return the closest observed row strictly before or after ``rate_date``."""

        rates = self.schema.rates
        stmt = select(rates).where(rates.c.interpolated.is_(False))
        if before:
            stmt = stmt.where(rates.c.rate_date < rate_date).order_by(rates.c.rate_date.desc())
        else:
            stmt = stmt.where(rates.c.rate_date > rate_date).order_by(rates.c.rate_date.asc())
        return self._first(stmt)

    # -- range reads ---------------------------------------------------------

    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        provenance: Provenance | None = None,
    ) -> list[RateRow]:
        rates = self.schema.rates
        stmt = select(rates).order_by(rates.c.rate_date)
        if start is not None:
            stmt = stmt.where(rates.c.rate_date >= start)
        if end is not None:
            stmt = stmt.where(rates.c.rate_date <= end)
        if provenance is not None:
            stmt = stmt.where(rates.c.interpolated.is_(provenance.flag))
        return self._rows(stmt)

    def observed_rows(self, start: date | None = None, end: date | None = None) -> list[RateRow]:
        return self.fetch_range(start, end, provenance=Provenance.OBSERVED)

    def existing_dates(self, start: date, end: date) -> set[date]:
        """Return the stored dates within the closed range ``[start, end]``."""

        rates = self.schema.rates
        stmt = select(rates.c.rate_date).where(
            rates.c.rate_date >= start, rates.c.rate_date <= end
        )
        return {_normalise_rate_date(value) for value in self.connection.execute(stmt).scalars()}

    # -- writes --------------------------------------------------------------

    def insert_rows(self, rows: Iterable[RateRow]) -> PersistenceResult:
        """Insert rows, leaving any existing row for the same date untouched."""

        result = PersistenceResult()
        rates = self.schema.rates
        for row in rows:
            stmt = (
                sqlite_insert(rates)
                .values(**encode_row(row, self.tracked_currencies))
                .on_conflict_do_nothing(index_elements=[rates.c.rate_date])
            )
            if not self.connection.execute(stmt).rowcount:
                result.skipped += 1
            elif row.is_observed:
                result.inserted += 1
            else:
                result.interpolated += 1
        return result

    # -- staging (ingestion) -------------------------------------------------

    def load_staging(self, records: Sequence[FeedRecord]) -> int:
        """Copy raw feed records into a freshly created staging table."""

        staging = self.schema.staging
        staging.drop(self.connection, checkfirst=True)
        staging.create(self.connection)
        if not records:
            return 0
        payload = []
        for record in records:
            values: dict[str, object] = {"rate_date": record.rate_date.isoformat()}
            for code in self.tracked_currencies:
                values[code] = record.cells.get(code)
            payload.append(values)
        self.connection.execute(insert(staging), payload)
        return len(payload)

    def normalise_staging(self, sentinel: str = NOT_AVAILABLE) -> int:
        """Replace sentinel and blank cells with NULL; return cells rewritten."""

        staging = self.schema.staging
        rewritten = 0
        for code in self.tracked_currencies:
            column = staging.c[code]
            stmt = (
                update(staging)
                .where(func.trim(column).in_([sentinel, ""]))
                .values({code: None})
            )
            rewritten += self.connection.execute(stmt).rowcount
        return rewritten

    def duplicate_staging_dates(self) -> list[date]:
        staging = self.schema.staging
        stmt = (
            select(staging.c.rate_date)
            .group_by(staging.c.rate_date)
            .having(func.count() > 1)
            .order_by(staging.c.rate_date)
        )
        return [date.fromisoformat(value) for value in self.connection.execute(stmt).scalars()]

    def staged_rows(self) -> list[RateRow]:
        """Decode staging rows into observed rate rows, oldest first."""

        staging = self.schema.staging
        stmt = select(staging).order_by(staging.c.rate_date)
        return [
            RateRow(
                rate_date=date.fromisoformat(mapping["rate_date"]),
                provenance=Provenance.OBSERVED,
                quotes=decode_cells(mapping, self.tracked_currencies),
            )
            for mapping in self.connection.execute(stmt).mappings()
        ]

    def drop_staging(self) -> None:
        self.schema.staging.drop(self.connection, checkfirst=True)


class SQLiteManager:
    """Owns the SQLite engine and hands out transaction-scoped rate stores."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        currencies: Iterable[str] = ECB_CURRENCIES,
    ) -> None:
        self.db_path = Path(db_path).expanduser().resolve() if db_path else default_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.schema = RateSchema(normalise_currencies(currencies))
        self.engine: Engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
        )
        _install_transactional_ddl(self.engine)
        try:
            self.ensure_schema()
        except SQLAlchemyError as exc:
            self.engine.dispose()
            raise StoreError(f"unable to open the exchange store at {self.db_path}") from exc
        except StoreError:
            self.engine.dispose()
            raise

    @property
    def currencies(self) -> tuple[str, ...]:
        return self.schema.currencies

    def ensure_schema(self) -> None:
        """Create tables, add newly tracked currency columns, check the version."""

        with self.engine.begin() as connection:
            self.schema.metadata.create_all(connection)
            self._patch_currency_columns(connection)
            self._check_schema_version(connection)

    def _patch_currency_columns(self, connection: Connection) -> None:
        existing = {column["name"] for column in inspect(connection).get_columns(RATES_TABLE)}
        missing = [code for code in self.schema.currencies if code not in existing]
        preparer = connection.dialect.identifier_preparer
        for code in missing:
            connection.execute(
                text(f"ALTER TABLE {RATES_TABLE} ADD COLUMN {preparer.quote(code)} TEXT")
            )
        if missing:
            LOGGER.info("Added currency columns to %s: %s", self.db_path, ", ".join(missing))

    def _check_schema_version(self, connection: Connection) -> None:
        meta = self.schema.meta
        stored = connection.execute(
            select(meta.c.value).where(meta.c.key == "schema_version")
        ).scalar()
        if stored is None:
            connection.execute(insert(meta).values(key="schema_version", value=str(SCHEMA_VERSION)))
            return
        if int(stored) > SCHEMA_VERSION:
            raise StoreError(
                f"{self.db_path} uses schema version {stored}; "
                f"this release understands up to {SCHEMA_VERSION}"
            )

    @contextmanager
    def transaction(self, *, rollback: bool = False) -> Iterator[RateStore]:
        """Yield a store whose writes commit together or not at all.

        With ``rollback=True`` the work is discarded even when it succeeds,
        which lets a dry run exercise every write path.
        """

        with self.engine.connect() as connection:
            with connection.begin() as trans:
                yield RateStore(connection, self.schema)
                if rollback:
                    trans.rollback()

    @contextmanager
    def reader(self) -> Iterator[RateStore]:
        with self.engine.connect() as connection:
            yield RateStore(connection, self.schema)

    def latest_date(self) -> date | None:
        with self.reader() as store:
            return store.latest_date()

    def observed_bounds(self) -> tuple[date, date] | None:
        with self.reader() as store:
            return store.observed_bounds()

    def lookup_exact(
        self, rate_date: date, currencies: Iterable[Currency | str]
    ) -> list[ExchangeRate]:
        with self.reader() as store:
            return store.lookup_exact(rate_date, currencies)

    def lookup_with_fallback(
        self, rate_date: date, currencies: Iterable[Currency | str]
    ) -> list[ExchangeRate]:
        with self.reader() as store:
            return store.lookup_with_fallback(rate_date, currencies)

    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        provenance: Provenance | None = None,
    ) -> list[RateRow]:
        with self.reader() as store:
            return store.fetch_range(start, end, provenance=provenance)

    def insert_rows(self, rows: Sequence[RateRow]) -> PersistenceResult:
        with self.transaction() as store:
            result = store.insert_rows(rows)
        LOGGER.info(
            "Inserted %s observed rows, %s interpolated rows, skipped %s",
            result.inserted,
            result.interpolated,
            result.skipped,
        )
        return result

    def close(self) -> None:  # pragma: no cover - trivial
        self.engine.dispose()

    def __enter__(self) -> "SQLiteManager":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()


__all__ = [
    "PersistenceResult",
    "RateSchema",
    "RateStore",
    "SCHEMA_VERSION",
    "SQLiteManager",
]
