"""Tests for configuration loading."""

from larder.config import load_config
from larder.constants import DEFAULT_AI_MODEL, DEFAULT_STATE_DIR
from larder.contracts import Scope
from larder.persistence import get_state_store


def _clear_env(monkeypatch):
    for name in ("LARDER_DATABASE_URL", "DATABASE_URL", "LARDER_STATE_DIR", "LARDER_AI_MODEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_config_file_missing(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("LARDER_CONFIG", str(tmp_path / "absent.yaml"))

    config = load_config()

    assert config.state_dir == DEFAULT_STATE_DIR
    assert config.database_url is None
    assert config.ai.model == DEFAULT_AI_MODEL
    assert config.ai.pacing_delay_s == 1.0
    assert config.ai.variation_delay_s == 2.0
    assert config.schedule.scope is Scope.ALL
    assert config.schedule.interval_days == 7


def test_load_config_from_env(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
state_dir: /var/lib/larder
database_url: sqlite:///tmp/larder.db
ai:
  model: test
  pacing_delay_s: 0
schedule:
  scope: last7days
  interval_days: 1
"""
    )
    monkeypatch.setenv("LARDER_CONFIG", str(config_path))

    config = load_config()
    assert config.state_dir == "/var/lib/larder"
    assert config.database_url == "sqlite:///tmp/larder.db"
    assert config.ai.model == "test"
    assert config.ai.pacing_delay_s == 0
    assert config.ai.max_title_length == 100
    assert config.schedule.scope is Scope.LAST_7_DAYS
    assert config.schedule.interval_days == 1


def test_env_overrides_config_file(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    config_path = tmp_path / "config.yaml"
    config_path.write_text("state_dir: from-file\n")
    monkeypatch.setenv("LARDER_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("DATABASE_URL", "sqlite://env.db")
    monkeypatch.setenv("LARDER_AI_MODEL", "openai:gpt-4o-mini")

    config = load_config(str(config_path))
    assert config.state_dir == str(tmp_path / "state")
    assert config.database_url == "sqlite://env.db"
    assert config.ai.model == "openai:gpt-4o-mini"

    store = get_state_store(config=config)
    assert store.state_dir == tmp_path / "state"
