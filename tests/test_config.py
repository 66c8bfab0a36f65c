"""
Tests for settings loading
Version: 1.0
"""

import pytest
from pydantic import ValidationError

from config import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ORDERS_API_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.ORDERS_API_URL == "http://localhost:5000/api/service"
        assert settings.DEFAULT_PAGE_SIZE == 10
        assert settings.CIRCUIT_FAILURE_THRESHOLD == 3

    def test_environment_overrides(self, mock_env_vars):
        settings = Settings(_env_file=None)

        assert settings.ORDERS_API_URL == "https://orders.example.com/api/service"
        assert settings.ORDERS_API_TOKEN == "test-token"
        assert settings.DEFAULT_PAGE_SIZE == 5
        assert not settings.is_production
        assert not settings.DEBUG

    @pytest.mark.parametrize("env,production,debug", [
        ("production", True, False),
        ("development", False, True),
        ("staging", False, False),
    ])
    def test_environment_flags(self, monkeypatch, env, production, debug):
        monkeypatch.setenv("APP_ENV", env)
        settings = Settings(_env_file=None)

        assert settings.is_production is production
        assert settings.DEBUG is debug

    def test_rejects_non_http_url(self, monkeypatch):
        monkeypatch.setenv("ORDERS_API_URL", "ftp://orders.example.com")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_rejects_zero_page_size(self, monkeypatch):
        monkeypatch.setenv("MAX_PAGE_SIZE", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
