from pathlib import Path

import pytest
from pydantic import ValidationError

from lexis.application.config import AppConfig, find_config_file, resolve_config


def test_defaults(mock_home):
    config = resolve_config()
    assert config.api_base_url == "http://127.0.0.1:8000"
    assert config.page_size == 20
    assert config.track_response_time is False
    assert config.key_debounce == 0.0


def test_cli_overrides_ignore_none(mock_home):
    config = resolve_config({"api_base_url": "http://catalog:9000/", "page_size": None})
    assert config.api_base_url == "http://catalog:9000"
    assert config.page_size == 20


def test_env_vars(mock_home, monkeypatch):
    monkeypatch.setenv("LEXIS_PAGE_SIZE", "50")
    monkeypatch.setenv("LEXIS_TRACK_RESPONSE_TIME", "true")
    config = resolve_config()
    assert config.page_size == 50
    assert config.track_response_time is True


def test_toml_file(mock_home, monkeypatch):
    cfg_dir = mock_home / ".config" / "lexis"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "config.toml").write_text('api_base_url = "http://from-file:8000"\nkey_debounce_ms = 150\n')

    assert find_config_file() == cfg_dir / "config.toml"
    config = resolve_config()
    assert config.api_base_url == "http://from-file:8000"
    assert config.key_debounce == pytest.approx(0.15)

    # Env beats file, CLI beats env
    monkeypatch.setenv("LEXIS_API_BASE_URL", "http://from-env:8000")
    assert resolve_config().api_base_url == "http://from-env:8000"
    assert resolve_config({"api_base_url": "http://cli:1"}).api_base_url == "http://cli:1"


def test_no_config_file(mock_home):
    assert find_config_file() is None


def test_log_dir_expands_user(mock_home):
    config = AppConfig(log_dir="~/logs")
    assert config.log_dir == Path(str(mock_home)) / "logs"


def test_invalid_page_size(mock_home):
    with pytest.raises(ValidationError):
        AppConfig(page_size=0)
