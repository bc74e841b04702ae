"""Tests for config/settings.py — environment-backed configuration."""

from __future__ import annotations

import pytest

from config.settings import Settings
from core.errors import ConfigurationError


class TestSettings:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("NAVER_CLIENT_ID", "id")
        monkeypatch.setenv("NAVER_CLIENT_SECRET", "secret")
        monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
        monkeypatch.setenv("SEARCH_PROXY_URL", "http://proxy.test/api/search")

        settings = Settings()

        assert settings.naver_client_id == "id"
        assert settings.naver_client_secret == "secret"
        assert settings.http_timeout == 2.5
        assert settings.search_proxy_url == "http://proxy.test/api/search"
        settings.validate()

    def test_blank_proxy_url_means_in_process(self, monkeypatch):
        monkeypatch.setenv("SEARCH_PROXY_URL", "")
        assert Settings().search_proxy_url is None

    def test_missing_credentials_listed(self, monkeypatch):
        monkeypatch.delenv("NAVER_CLIENT_ID", raising=False)
        monkeypatch.setenv("NAVER_CLIENT_SECRET", "secret")

        settings = Settings()

        assert settings.missing_credentials() == ["NAVER_CLIENT_ID"]
        with pytest.raises(ConfigurationError, match="NAVER_CLIENT_ID"):
            settings.validate()

    def test_explicit_values_override_environment(self, monkeypatch):
        monkeypatch.setenv("NAVER_CLIENT_ID", "from-env")
        assert Settings(naver_client_id="explicit").naver_client_id == "explicit"

    def test_session_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("FLASK_SECRET_KEY", "signing-key")
        monkeypatch.setenv("MAX_SEARCH_SESSIONS", "8")

        settings = Settings()

        assert settings.secret_key == "signing-key"
        assert settings.max_sessions == 8

    def test_secret_key_generated_when_unset(self, monkeypatch):
        monkeypatch.delenv("FLASK_SECRET_KEY", raising=False)
        assert len(Settings().secret_key) == 64
