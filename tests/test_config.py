"""Tests for environment configuration."""

import pytest

from redmine_mcp.config import ConfigurationError, RedmineConfig


class TestFromEnv:
    """Tests for RedmineConfig.from_env."""

    def test_reads_required_values(self):
        config = RedmineConfig.from_env({
            "REDMINE_URL": "https://redmine.example.com/",
            "REDMINE_API_KEY": "abc123",
        })

        assert config.base_url == "https://redmine.example.com"
        assert config.api_key == "abc123"
        assert config.timeout == 30.0
        assert config.log_level == "INFO"

    def test_optional_values(self):
        config = RedmineConfig.from_env({
            "REDMINE_URL": "http://localhost:3000",
            "REDMINE_API_KEY": "abc123",
            "REDMINE_TIMEOUT": "5",
            "LOG_LEVEL": "debug",
        })

        assert config.timeout == 5.0
        assert config.log_level == "DEBUG"

    def test_missing_url(self):
        with pytest.raises(ConfigurationError) as exc_info:
            RedmineConfig.from_env({"REDMINE_API_KEY": "abc123"})
        assert "REDMINE_URL" in str(exc_info.value)
        assert "REDMINE_API_KEY" not in str(exc_info.value)

    def test_missing_both(self):
        with pytest.raises(ConfigurationError) as exc_info:
            RedmineConfig.from_env({})
        message = str(exc_info.value)
        assert "REDMINE_URL" in message
        assert "REDMINE_API_KEY" in message

    def test_blank_key_counts_as_missing(self):
        with pytest.raises(ConfigurationError):
            RedmineConfig.from_env({"REDMINE_URL": "https://r.example.com", "REDMINE_API_KEY": "   "})

    def test_rejects_url_without_scheme(self):
        with pytest.raises(ConfigurationError) as exc_info:
            RedmineConfig.from_env({"REDMINE_URL": "redmine.example.com", "REDMINE_API_KEY": "abc"})
        assert "base_url" in str(exc_info.value)

    def test_rejects_bad_timeout(self):
        with pytest.raises(ConfigurationError):
            RedmineConfig.from_env({
                "REDMINE_URL": "https://r.example.com",
                "REDMINE_API_KEY": "abc",
                "REDMINE_TIMEOUT": "-1",
            })


class TestMain:
    """Startup must refuse to run without configuration."""

    def test_exits_non_zero_without_config(self, monkeypatch, capsys):
        from redmine_mcp import server

        monkeypatch.delenv("REDMINE_URL", raising=False)
        monkeypatch.delenv("REDMINE_API_KEY", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            server.main()

        assert exc_info.value.code == 1
        assert "REDMINE_URL" in capsys.readouterr().err
