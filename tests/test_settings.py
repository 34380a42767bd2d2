from pathlib import Path

import pytest
import structlog
from pydantic import ValidationError

from bibflow.logconfig import configure_logging
from bibflow.settings import DEFAULT_ASSETS_DIR, Settings


def test_defaults(monkeypatch) -> None:
    for name in ("BIBFLOW_BATCH_SIZE", "BIBFLOW_ASSETS_DIR", "BIBFLOW_KEY_LENGTH_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.load()
    assert settings.batch_size == 2000
    assert settings.queue_size == 2
    assert settings.key_length_limit == 250
    assert settings.max_title_length == 2048
    assert settings.assets_dir == DEFAULT_ASSETS_DIR
    assert (settings.assets_dir / "genios" / "dbmap.json").is_file()


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BIBFLOW_ASSETS_DIR", str(tmp_path))
    monkeypatch.setenv("BIBFLOW_HTTP_TIMEOUT", "5.5")
    settings = Settings.load()
    assert settings.assets_dir == tmp_path
    assert settings.http_timeout == 5.5


def test_batch_size_must_be_positive(monkeypatch) -> None:
    monkeypatch.setenv("BIBFLOW_BATCH_SIZE", "0")
    with pytest.raises(ValidationError):
        Settings.load()


def test_configure_logging_filters_by_level(capsys) -> None:
    configure_logging("warning")
    logger = structlog.get_logger("bibflow.test")
    logger.info("hidden.event")
    logger.warning("shown.event", answer=42)
    err = capsys.readouterr().err
    assert "shown.event" in err
    assert "answer=42" in err
    assert "hidden.event" not in err
