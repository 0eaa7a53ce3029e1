"""Environment-driven settings."""

import logging

from src import config


class TestSettings:
    def test_env_overrides(self, data_dir, monkeypatch):
        monkeypatch.setenv("EVENTPULSE_BRIEFING_RECENT_EVENTS", "5")
        monkeypatch.setenv("EVENTPULSE_STALE_HOURS", "6")
        assert config.data_dir() == data_dir
        assert config.model_name() == "gemini-test"
        assert config.briefing_recent_events() == 5
        assert config.stale_hours() == 6

    def test_defaults(self, monkeypatch):
        for name in ("EVENTPULSE_MODEL", "EVENTPULSE_LANGUAGE", "EVENTPULSE_DATA_DIR", "EVENTPULSE_STALE_HOURS"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr(config, "_from_secrets", lambda name: None)
        assert config.model_name() == config.DEFAULT_MODEL
        assert config.response_language() == "English"
        assert config.data_dir() == config.ROOT_DIR / "data"
        assert config.stale_hours() == 24
        assert config.api_key() is None

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv("EVENTPULSE_BRIEFING_RECENT_EVENTS", "many")
        assert config.briefing_recent_events() == config.DEFAULT_BRIEFING_RECENT_EVENTS

    def test_blank_env_is_unset(self, monkeypatch):
        monkeypatch.setenv("EVENTPULSE_LANGUAGE", "   ")
        monkeypatch.setattr(config, "_from_secrets", lambda name: None)
        assert config.response_language() == "English"

    def test_configure_logging_sets_level(self):
        root = logging.getLogger()
        previous = root.level
        try:
            config.configure_logging("debug")
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(previous)
