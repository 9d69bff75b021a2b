"""
ServiceWatch - Configuration Tests
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from servicewatch.utils.config import Config, DEFAULT_WINDOW_DAYS


ENV_VARS = [
    "SERVICEWATCH_API_URL",
    "SERVICEWATCH_TIMEOUT",
    "SERVICEWATCH_TOKEN_FILE",
    "SERVICEWATCH_LOG_DIR",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "DEFAULT_WINDOW_DAYS",
    "PRELOAD_CONCURRENCY",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No inherited variables and no stray .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestConfig:

    def test_missing_api_url_raises(self, clean_env):
        with pytest.raises(ValueError, match="SERVICEWATCH_API_URL"):
            Config()

    def test_defaults(self, clean_env):
        clean_env.setenv("SERVICEWATCH_API_URL", "http://dash.local/api/")

        config = Config()

        assert config.gateway.base_url == "http://dash.local/api"
        assert config.gateway.timeout_seconds == 15.0
        assert config.operational.max_retries == 3
        assert config.operational.default_window_days == DEFAULT_WINDOW_DAYS
        assert config.operational.preload_concurrency == 10
        assert config.session.token_file == Path("data/session/auth_token")

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("SERVICEWATCH_API_URL", "http://dash.local/api")
        clean_env.setenv("PRELOAD_CONCURRENCY", "4")
        clean_env.setenv("DEFAULT_WINDOW_DAYS", "30")
        clean_env.setenv("SERVICEWATCH_TOKEN_FILE", str(tmp_path / "tok"))

        config = Config()

        assert config.operational.preload_concurrency == 4
        assert config.operational.default_window_days == 30
        assert config.session.token_file == tmp_path / "tok"

    def test_env_file_is_read(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("SERVICEWATCH_API_URL=http://from-dotenv/api\n", encoding="utf-8")

        # load_dotenv writes straight into os.environ
        with patch.dict(os.environ):
            config = Config()

        assert config.gateway.base_url == "http://from-dotenv/api"

    def test_invalid_concurrency_rejected(self, clean_env):
        clean_env.setenv("SERVICEWATCH_API_URL", "http://dash.local/api")
        clean_env.setenv("PRELOAD_CONCURRENCY", "0")

        with pytest.raises(ValueError):
            Config()
