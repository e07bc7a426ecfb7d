"""Tests for config module."""

import pytest


def test_settings_defaults():
    from questproof.config import Settings

    s = Settings()
    assert s.version == "1.0.0"
    assert s.env == "test"  # set by conftest
    assert s.geofence_threshold_meters == 500.0
    assert s.verified_threshold == 0.85
    assert s.uncertain_threshold == 0.60
    assert s.judge_timeout == 20.0
    assert s.run_specialists is False


def test_settings_is_production():
    from questproof.config import Settings

    assert Settings(env="production").is_production is True
    assert Settings(env="development").is_production is False


def test_cors_origin_list():
    from questproof.config import Settings

    s = Settings(cors_origins="http://a.com, http://b.com")
    assert s.cors_origin_list == ["http://a.com", "http://b.com"]


def test_provider_key_accepts_conventional_env_name(monkeypatch):
    from questproof.config import Settings

    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    monkeypatch.setenv("QUESTPROOF_GEOFENCE_THRESHOLD_METERS", "250")
    s = Settings()
    assert s.gemini_api_key == "g-key"
    assert s.geofence_threshold_meters == 250.0


def test_pipeline_config_is_explicit():
    from questproof.config import Settings

    cfg = Settings(gemini_api_key="", geofence_threshold_meters=300).pipeline_config
    assert cfg.judge_enabled is False
    assert cfg.geofence_threshold_m == 300
    assert cfg.thresholds.verified == 0.85
    assert cfg.thresholds.uncertain == 0.60

    assert Settings(gemini_api_key="abc").pipeline_config.judge_enabled is True


def test_thresholds_must_be_ordered():
    from pydantic import ValidationError

    from questproof.models.schemas import VerdictThresholds

    with pytest.raises(ValidationError):
        VerdictThresholds(verified=0.5, uncertain=0.7)


def test_get_settings_is_cached():
    from questproof.config import get_settings

    assert get_settings() is get_settings()


def test_json_log_formatter():
    import json
    import logging

    from questproof.logging_config import JsonFormatter

    record = logging.makeLogRecord(
        {"name": "questproof.core", "levelname": "INFO", "msg": "[%s] done", "args": ("sub1",), "verdict": "verified"}
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "[sub1] done"
    assert payload["logger"] == "questproof.core"
    assert payload["verdict"] == "verified"


def test_configure_logging_installs_single_handler():
    import logging

    from questproof.config import Settings
    from questproof.logging_config import JsonFormatter, configure_logging

    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        configure_logging(Settings(log_level="debug", log_json=True))
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_judge_provider_keys(monkeypatch):
    from questproof.config import Settings

    monkeypatch.setenv("GROQ_API_KEY", "groq-key")
    monkeypatch.setenv("LOVABLE_API_KEY", "gw-key")
    cfg = Settings(gemini_api_key="").pipeline_config
    assert cfg.judge_enabled is True
    assert cfg.gemini_api_key is None
    assert cfg.groq_api_key == "groq-key"
    assert cfg.gateway_api_key == "gw-key"
    assert cfg.gateway_base_url == "https://ai.gateway.lovable.dev/v1"
