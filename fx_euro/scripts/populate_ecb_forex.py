"""CLI entry point for seeding ECB reference rates."""

from __future__ import annotations

from fx_euro.seeds.populate_ecb_forex import main

if __name__ == "__main__":  # pragma: no cover - thin wrapper
    main()
