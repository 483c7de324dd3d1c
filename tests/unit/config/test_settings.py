"""
Unit tests for environment-driven settings.
"""

import pytest

from config.settings import Settings, clean_endpoint


class TestCleanEndpoint:
    @pytest.mark.parametrize(
        "raw",
        [
            "https://res.openai.azure.com",
            "https://res.openai.azure.com/",
            "http://res.openai.azure.com//",
            "res.openai.azure.com/openai",
            "  https://res.openai.azure.com/openai  ",
        ],
    )
    def test_reduces_to_host(self, raw) -> None:
        assert clean_endpoint(raw) == "res.openai.azure.com"


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        for name in (
            "REQUEST_TIMEOUT_SECONDS",
            "MAX_UPLOAD_BYTES",
            "UNKNOWN_CONVERSATION_POLICY",
            "HOST",
            "PORT",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.request_timeout == 60.0
        assert settings.max_upload_bytes == 5 * 1024 * 1024
        assert settings.token_max_age == 24 * 3600
        assert settings.unknown_conversation_policy == "create"
        assert settings.port == 3000

    def test_endpoint_url_is_normalized(self, monkeypatch) -> None:
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://res.openai.azure.com/openai/")

        assert Settings().azure_endpoint_url() == "https://res.openai.azure.com"

    @pytest.mark.parametrize(
        "missing",
        ["AZURE_OPENAI_KEY", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_DEPLOYMENT_NAME"],
    )
    def test_missing_azure_variable_is_named(self, monkeypatch, missing) -> None:
        monkeypatch.setenv(missing, "   ")

        with pytest.raises(RuntimeError, match=missing):
            Settings().azure_endpoint_url()

    def test_uploads_dir_under_public(self, monkeypatch) -> None:
        monkeypatch.setenv("PUBLIC_DIR", "/srv/www")

        assert Settings().uploads_dir == "/srv/www/uploads"
