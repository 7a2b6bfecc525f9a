"""Unit tests for taxprotest.infra.fastapi.settings."""

from __future__ import annotations

import pytest

from taxprotest.infra.fastapi.settings import AppSettings, CORSSettings


class TestCORSSettings:
    @pytest.mark.unit
    def test_defaults(self) -> None:
        cors = CORSSettings()
        assert cors.allow_origins == ["*"]
        assert cors.allow_credentials is False
        assert cors.expose_headers == ["X-Request-ID"]

    @pytest.mark.unit
    def test_parse_comma_separated_string(self) -> None:
        cors = CORSSettings(
            allow_origins="https://signup.example, https://admin.example",  # type: ignore[arg-type]
        )
        assert cors.allow_origins == ["https://signup.example", "https://admin.example"]

    @pytest.mark.unit
    def test_origins_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://signup.example,https://admin.example")
        assert CORSSettings().allow_origins == [
            "https://signup.example",
            "https://admin.example",
        ]

    @pytest.mark.unit
    def test_credentials_require_explicit_origins(self) -> None:
        with pytest.raises(ValueError, match="allow_credentials"):
            CORSSettings(allow_credentials=True)
        cors = CORSSettings(allow_credentials=True, allow_origins=["https://admin.example"])
        assert cors.allow_credentials is True


class TestAppSettings:
    @pytest.mark.unit
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("APP_TITLE", raising=False)
        settings = AppSettings()
        assert settings.title == "Tax Protest Intake API"
        assert settings.docs_url == "/docs"
        assert settings.configure_logging is True
        assert isinstance(settings.cors, CORSSettings)

    @pytest.mark.unit
    def test_custom_values(self) -> None:
        settings = AppSettings(title="Admin API", version="2.0.0", debug=True)
        assert settings.title == "Admin API"
        assert settings.version == "2.0.0"
        assert settings.debug is True
