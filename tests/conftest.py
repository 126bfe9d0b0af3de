import logging
from pathlib import Path
import sys

import pytest

# Ensure repo root is importable without an install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from toolenvelope.config import load_config  # noqa: E402
from toolenvelope.logging_setup import LOGGER_NAME  # noqa: E402

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(autouse=True)
def hermetic_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Autouse: each test runs in its own tmp cwd, XDG dirs and the tracking
    database stay inside tmp, and no TE_* override leaks in from the shell.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / ".cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / ".local" / "share"))
    monkeypatch.setenv("TE_DB_PATH", str(tmp_path / "te-history.db"))
    for var in ("TE_RAW", "TE_LOG_LEVEL", "TE_SESSION_ID"):
        monkeypatch.delenv(var, raising=False)
    load_config.cache_clear()
    yield tmp_path
    load_config.cache_clear()
    # CliRunner streams are closed after each invoke.
    logging.getLogger(LOGGER_NAME).handlers.clear()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "te-history.db"
