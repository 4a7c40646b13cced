"""
Tests for log configuration.
"""
from pathlib import Path

import pytest
from pydantic import ValidationError

from crenv.utils.log_config import (
    LogConfig,
    get_log_config,
    load_log_config,
    reset_log_config,
)


@pytest.fixture(autouse=True)
def fresh_cache():
    reset_log_config()
    yield
    reset_log_config()


class TestLogConfig:
    """LogConfig validation."""

    def test_defaults(self):
        """Defaults log to ~/.crenv/logs with size rotation."""
        config = LogConfig()

        assert config.log_dir == str(Path.home() / ".crenv" / "logs")
        assert config.log_path.name == "app.log"
        assert config.rotation == "10 MB"
        assert config.compression == "gz"
        assert config.console_enabled is False

    def test_level_case_insensitive(self):
        assert LogConfig(console_level="info").console_level == "INFO"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"console_level": "LOUD"},
            {"file_level": "WARN"},
            {"compression": "bz2"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            LogConfig(**kwargs)


class TestLoading:
    """Environment source."""

    def test_env_overrides_defaults(self):
        """CRENV_LOG_* variables are parsed into typed fields."""
        env = {
            "CRENV_LOG_DIR": "/tmp/crenv-logs",
            "CRENV_LOG_LEVEL": "error",
            "CRENV_LOG_ROTATION": "1 day",
            "CRENV_LOG_JSON": "true",
            "CRENV_LOG_COMPRESSION": "none",
            "CRENV_LOG_CONSOLE": "0",
        }

        config = load_log_config(env)

        assert config.log_path == Path("/tmp/crenv-logs/app.log")
        assert config.console_level == "ERROR"
        assert config.rotation == "1 day"
        assert config.json_logs is True
        assert config.compression is None
        assert config.console_enabled is False

    def test_unrelated_variables_ignored(self):
        assert load_log_config({"HOME": "/root", "CRENV_PROVIDERS": "x:y"}) == LogConfig()

    def test_invalid_env_value(self):
        with pytest.raises(ValidationError):
            load_log_config({"CRENV_LOG_LEVEL": "LOUD"})

    def test_cache(self):
        first = get_log_config()
        assert get_log_config() is first
        reset_log_config()
        assert get_log_config() is not first
