"""Tests for settings validation and server URL checks."""

import pytest
from pydantic import ValidationError

from embedres.config.schema import ServiceSettings, validate_server_url
from embedres.errors.exceptions import ConfigurationError


class TestValidateServerUrl:
    def test_default_url_valid(self):
        result = validate_server_url("http://localhost:41184")
        assert result.is_valid
        assert result.message == "Valid Joplin server URL"
        assert result.suggestions == []

    def test_empty(self):
        result = validate_server_url("   ")
        assert not result.is_valid
        assert result.message == "Server URL is required"

    def test_missing_scheme(self):
        result = validate_server_url("localhost:41184")
        assert not result.is_valid
        assert "Try: http://localhost:41184" in result.suggestions

    def test_unsupported_scheme(self):
        result = validate_server_url("ftp://localhost:41184")
        assert not result.is_valid
        assert result.message == "Only HTTP and HTTPS protocols are supported"

    def test_no_host(self):
        assert validate_server_url("http://").message == "Invalid URL format"

    def test_bad_port(self):
        assert not validate_server_url("http://localhost:notaport").is_valid

    def test_localhost_without_port_warns(self):
        result = validate_server_url("http://localhost")
        assert result.is_valid
        assert any("41184" in s for s in result.suggestions)

    def test_path_and_query_warn(self):
        result = validate_server_url("https://joplin.example.com/api?x=1")
        assert result.is_valid
        assert len(result.suggestions) == 2


class TestServiceSettings:
    def test_defaults(self):
        settings = ServiceSettings()
        assert settings.server_url == "http://localhost:41184"
        assert settings.max_concurrency == 3

    def test_trailing_slash_stripped(self):
        assert ServiceSettings(server_url="http://localhost:41184/").server_url == "http://localhost:41184"

    def test_invalid_url_rejected(self):
        with pytest.raises(ValidationError):
            ServiceSettings(server_url="localhost")

    def test_concurrency_bounds(self):
        with pytest.raises(ValidationError):
            ServiceSettings(max_concurrency=33)

    def test_retry_config(self):
        retry = ServiceSettings(max_attempts=5, base_delay=0.5, max_delay=4).retry
        assert retry.max_attempts == 5
        assert retry.base_delay == 0.5
        assert retry.max_delay == 4

    def test_load_merges_hierarchy(self, monkeypatch):
        monkeypatch.setenv("JOPLIN_TOKEN", "env-token")
        settings = ServiceSettings.load(max_concurrency=7)
        assert settings.token == "env-token"
        assert settings.max_concurrency == 7

    def test_load_wraps_validation_errors(self, monkeypatch):
        monkeypatch.setenv("JOPLIN_SERVER_URL", "not a url")
        with pytest.raises(ConfigurationError):
            ServiceSettings.load()

    def test_unknown_keys_ignored(self):
        assert ServiceSettings.model_validate({"colour": "blue"}).token == ""
