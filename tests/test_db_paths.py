import importlib
from pathlib import Path

import pytest

import fx_euro.db
from fx_euro.db import DATA_DIR_ENV_VAR, DB_FILENAME, default_db_path, resolve_data_dir


def test_default_data_dir_is_absolute() -> None:
    from fx_euro.db import DEFAULT_DATA_DIR

    assert DEFAULT_DATA_DIR.is_absolute()


def test_default_data_dir_follows_environment(tmp_path: Path, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv(DATA_DIR_ENV_VAR, str(tmp_path / "later"))

    assert fx_euro.db.DEFAULT_DATA_DIR == (tmp_path / "later").resolve()


def test_import_does_not_need_a_home_directory(tmp_path: Path, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    def no_home() -> Path:
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(Path, "home", staticmethod(no_home))
    monkeypatch.setenv(DATA_DIR_ENV_VAR, str(tmp_path / "configured"))

    module = importlib.reload(fx_euro.db)

    assert module.default_db_path() == (tmp_path / "configured").resolve() / DB_FILENAME
    monkeypatch.delenv(DATA_DIR_ENV_VAR)
    with pytest.raises(RuntimeError):
        module.resolve_data_dir()


def test_resolve_data_dir_creates_missing_directory(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "store"

    resolved = resolve_data_dir(target)

    assert resolved == target.resolve()
    assert resolved.is_dir()


def test_environment_variable_selects_data_dir(tmp_path: Path, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    monkeypatch.setenv(DATA_DIR_ENV_VAR, str(tmp_path / "from-env"))

    assert default_db_path() == (tmp_path / "from-env").resolve() / DB_FILENAME
