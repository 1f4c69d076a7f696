"""CSV helpers for reading the ECB historical reference-rate feed."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Iterable

from fx_euro.ingestion.models import FeedRecord
from fx_euro.utils.logger import get_logger

LOGGER = get_logger(__name__)

DATE_COLUMN = "Date"


@dataclass(slots=True)
class ECBFeedParseResult:
    """Currency columns announced by the header plus the raw rows."""

    currencies: tuple[str, ...]
    records: list[FeedRecord]

    @property
    def dates(self) -> list[date]:
        return [record.rate_date for record in self.records]


class ECBCSVParser:
    """Parse ``eurofxref-hist.csv`` into verbatim :class:`FeedRecord` rows.

    Cells are kept exactly as published (including the ``N/A`` sentinel);
    normalisation happens once the rows are staged in the store. The ECB file
    ends every line with a comma, so blank header columns are dropped.
    """

    def __init__(self, *, date_format: str = "%Y-%m-%d") -> None:
        self.date_format = date_format

    def parse(self, csv_path: str | Path) -> ECBFeedParseResult:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(path)

        with path.open("r", newline="", encoding="utf-8-sig") as handle:
            reader = csv.DictReader(handle)
            currencies = self._validate_header(reader.fieldnames)
            reader.fieldnames = [field.strip() for field in reader.fieldnames or ()]
            records: list[FeedRecord] = []
            for line_number, row in enumerate(reader, start=2):
                date_raw = (row.get(DATE_COLUMN) or "").strip()
                if not date_raw:
                    if any((value or "").strip() for key, value in row.items() if key):
                        raise ValueError(f"line {line_number}: missing date")
                    continue
                self._check_width(row, currencies, line_number)
                try:
                    rate_date = datetime.strptime(date_raw, self.date_format).date()
                except ValueError as exc:
                    raise ValueError(f"line {line_number}: invalid date {date_raw!r}") from exc
                cells = {
                    code: None if row.get(code) is None else row[code].strip()
                    for code in currencies
                }
                records.append(FeedRecord(rate_date=rate_date, cells=cells))
        LOGGER.info("Parsed %s feed rows covering %s currencies", len(records), len(currencies))
        return ECBFeedParseResult(currencies=currencies, records=records)

    @staticmethod
    def _check_width(row: dict, currencies: tuple[str, ...], line_number: int) -> None:
        # DictReader pads short rows with None and collects surplus cells under None.
        surplus = [value for value in row.get(None) or () if value.strip()]
        if surplus or any(row.get(code) is None for code in currencies):
            raise ValueError(
                f"line {line_number}: expected {len(currencies) + 1} fields"
            )

    @staticmethod
    def _validate_header(fieldnames: Iterable[str] | None) -> tuple[str, ...]:
        if not fieldnames:
            raise ValueError("CSV file does not contain a header row")
        normalized = [field.strip() for field in fieldnames]
        if DATE_COLUMN not in normalized:
            raise ValueError(f"CSV header has no {DATE_COLUMN!r} column")
        named = [field for field in normalized if field]
        if len(set(named)) != len(named):
            raise ValueError("CSV header repeats a column")
        currencies = tuple(field for field in named if field != DATE_COLUMN)
        if not currencies:
            raise ValueError("CSV header does not name any currency columns")
        return currencies


__all__ = ["DATE_COLUMN", "ECBCSVParser", "ECBFeedParseResult"]
