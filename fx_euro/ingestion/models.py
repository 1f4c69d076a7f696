"""Data models shared across ingestion, storage and interpolation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class Provenance(str, Enum):
    """Whether a stored row came from the feed or was synthesised."""

    OBSERVED = "observed"
    INTERPOLATED = "interpolated"

    @classmethod
    def from_flag(cls, interpolated: bool) -> "Provenance":
        return cls.INTERPOLATED if interpolated else cls.OBSERVED

    @property
    def flag(self) -> bool:
        """Return the value stored in the ``interpolated`` column."""

        return self is Provenance.INTERPOLATED


@dataclass(slots=True)
class FeedRecord:
    """One feed row with its currency cells kept as the published text."""

    rate_date: date
    cells: dict[str, str | None] = field(default_factory=dict)


@dataclass(slots=True)
class RateRow:
    """A stored day of EUR-denominated quotes (``currency per 1 EUR``)."""

    rate_date: date
    provenance: Provenance
    quotes: dict[str, Decimal | None] = field(default_factory=dict)

    def quote(self, currency: str) -> Decimal | None:
        return self.quotes.get(currency)

    @property
    def is_observed(self) -> bool:
        return self.provenance is Provenance.OBSERVED


@dataclass(slots=True)
class Neighbors:
    """The nearest observed rows on either side of a missing date."""

    previous: RateRow
    following: RateRow
    target: date


__all__ = ["FeedRecord", "Neighbors", "Provenance", "RateRow"]
