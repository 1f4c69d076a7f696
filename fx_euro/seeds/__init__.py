"""Database seeding utilities for :mod:`fx_euro`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = ["seed_ecb_forex"]

if TYPE_CHECKING:  # pragma: no cover - import only for static analyzers
    from fx_euro.seeds.populate_ecb_forex import seed_ecb_forex as seed_ecb_forex


def __getattr__(name: str) -> Any:
    """Resolve the seed helper on first access to keep package import cheap."""

    if name == "seed_ecb_forex":
        from fx_euro.seeds.populate_ecb_forex import seed_ecb_forex as _seed

        return _seed
    raise AttributeError(f"module 'fx_euro.seeds' has no attribute {name}")
