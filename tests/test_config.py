"""
Tests for settings loading.
"""

import yaml
import pytest

from timekeeping.infra.config import Settings, TrackerPreferences


def test_defaults(tmp_path):
    settings = Settings(config_dir=tmp_path / "cfg", data_dir=tmp_path / "data")

    assert settings.preferences == TrackerPreferences()
    assert settings.preferences.reconcile_epsilon_minutes == pytest.approx(1 / 600)
    assert settings.get_db_url() == f"sqlite+aiosqlite:///{tmp_path / 'data' / 'timekeeping.db'}"
    assert settings.get_session_cache_path() == tmp_path / "data" / "timer_session.json"


def test_yaml_overrides_preferences(tmp_path):
    cfg = tmp_path / "cfg"
    cfg.mkdir()
    (cfg / "settings.yaml").write_text(
        yaml.dump({"recompute_elapsed_on_restore": True, "duplicate_tolerance_seconds": 2.5}),
        encoding="utf-8",
    )

    settings = Settings(config_dir=cfg, data_dir=tmp_path / "data")

    assert settings.preferences.recompute_elapsed_on_restore is True
    assert settings.preferences.duplicate_tolerance_seconds == 2.5
    assert settings.preferences.tick_interval_ms == 1000


def test_save_preferences_round_trip(tmp_path):
    settings = Settings(config_dir=tmp_path / "cfg", data_dir=tmp_path / "data")
    settings.preferences = TrackerPreferences(default_timer_description="Focus block")
    settings.save_preferences()

    reloaded = Settings(config_dir=tmp_path / "cfg", data_dir=tmp_path / "data")
    assert reloaded.preferences.default_timer_description == "Focus block"


def test_environment_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("TIMEKEEPING_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    settings = Settings(config_dir=tmp_path / "cfg", data_dir=tmp_path / "data")
    assert settings.get_db_url() == "sqlite+aiosqlite:///:memory:"
