from __future__ import annotations

from pathlib import Path

import pytest

from fx_euro.scripts import convert
from fx_euro.seeds.populate_ecb_forex import seed_ecb_forex


@pytest.fixture
def data_dir(tmp_path: Path, write_feed) -> Path:  # type: ignore[no-untyped-def]
    seed_ecb_forex(write_feed(), data_dir=tmp_path)
    return tmp_path


def test_prints_conversion(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    status = convert.main(
        ["1000", "--from", "EUR", "--to", "usd", "--on", "1999-01-04", "--data-dir", str(data_dir)]
    )

    assert status == 0
    assert capsys.readouterr().out.strip() == "1000 EUR -> 1178.90 USD on the date 1999-01-04"


def test_defaults_to_latest_day(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    status = convert.main(["1000", "--from", "EUR", "--to", "JPY", "--data-dir", str(data_dir)])

    assert status == 0
    assert capsys.readouterr().out.strip() == "1000 EUR -> 126400 JPY on the date 1999-01-11"


def test_missing_rate_suggests_fallback(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    args = ["1000", "--from", "EUR", "--to", "USD", "--on", "1999-01-09", "--data-dir", str(data_dir)]

    assert convert.main(args) == 1
    assert "--fallback" in capsys.readouterr().err

    assert convert.main([*args, "--fallback"]) == 0
    assert "1162.90 USD" in capsys.readouterr().out


def test_same_currency_is_an_error(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert convert.main(["5", "--from", "USD", "--to", "USD", "--data-dir", str(data_dir)]) == 1
    assert "USD" in capsys.readouterr().err


def test_rejects_float_like_garbage() -> None:
    with pytest.raises(SystemExit):
        convert.parse_args(["ten", "--from", "EUR", "--to", "USD"])
