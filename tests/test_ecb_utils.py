from __future__ import annotations

import pytest

from fx_euro.money import find_currency
from fx_euro.utils.ecb import ECB_CURRENCIES, normalise_currencies


def test_every_ecb_code_is_a_known_currency() -> None:
    assert len(ECB_CURRENCIES) == 41
    assert all(find_currency(code) is not None for code in ECB_CURRENCIES)


def test_normalise_currencies_preserves_order_and_drops_euro() -> None:
    assert normalise_currencies([" usd", "JPY", "eur", "USD"]) == ("USD", "JPY")


@pytest.mark.parametrize("codes", [[], ["EUR"], ["US"], ["U5D"]])
def test_normalise_currencies_rejects_bad_sets(codes: list[str]) -> None:
    with pytest.raises(ValueError):
        normalise_currencies(codes)
