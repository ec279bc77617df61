"""Tests for configuration module."""

import os

import pytest


def test_settings_defaults():
    """Settings have sensible defaults."""
    from roleplay.core.config import Settings

    # Create fresh settings (don't use global)
    s = Settings(_env_file=None)

    assert s.llm_feedback_timeout == 90.0
    assert s.api_base_url == "http://localhost:8000"
    assert s.port == 8000


def test_settings_from_env():
    """Settings can be overridden via environment variables."""
    os.environ["DEBUG"] = "true"
    os.environ["LLM_FEEDBACK_TIMEOUT"] = "30"

    try:
        from roleplay.core.config import Settings

        s = Settings()

        assert s.debug
        assert s.llm_feedback_timeout == 30.0
    finally:
        del os.environ["DEBUG"]
        del os.environ["LLM_FEEDBACK_TIMEOUT"]


def test_settings_validation():
    """Settings validate constraints."""
    from pydantic import ValidationError

    from roleplay.core.config import Settings

    with pytest.raises(ValidationError):
        Settings(port=0)

    with pytest.raises(ValidationError):
        Settings(llm_feedback_timeout=0)


def test_training_config_defaults():
    """Missing YAML sections fall back to built-in defaults."""
    from roleplay.core.config import TrainingConfig

    config = TrainingConfig()

    assert config.session.turn_limit == 10
    assert config.reflection.min_length == 50
    assert config.feedback.min_turns_for_partial == 3


def test_load_training_config_from_yaml(tmp_path):
    """Values from the YAML file override defaults."""
    from roleplay.core.config import load_training_config

    path = tmp_path / "training_config.yaml"
    path.write_text("session:\n  turn_limit: 4\nreflection:\n  min_length: 20\n")

    config = load_training_config(path)

    assert config.session.turn_limit == 4
    assert config.reflection.min_length == 20
    assert config.monitor.poll_interval_seconds == 2.0


def test_load_training_config_empty_file(tmp_path):
    from roleplay.core.config import TrainingConfig, load_training_config

    path = tmp_path / "training_config.yaml"
    path.write_text("")

    assert load_training_config(path) == TrainingConfig()


def test_load_training_config_rejects_invalid(tmp_path):
    from pydantic import ValidationError

    from roleplay.core.config import load_training_config

    path = tmp_path / "training_config.yaml"
    path.write_text("session:\n  turn_limit: 0\n")

    with pytest.raises(ValidationError):
        load_training_config(path)


def test_global_config_available():
    """Global settings and training config are importable."""
    from roleplay.core.config import settings, training_config

    assert hasattr(settings, "database_path")
    assert training_config.session.turn_limit >= 1
