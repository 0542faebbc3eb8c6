from pathlib import Path

import pytest

from imgstore_client.config import Settings, settings


class TestConfigDefaults:
    def test_app_name(self) -> None:
        assert settings.app_name == "imgstore-client"

    def test_base_url_default(self) -> None:
        s = Settings(_env_file=None)
        assert s.base_url == "http://localhost:8080"

    def test_api_key_default(self) -> None:
        s = Settings(_env_file=None)
        assert s.api_key is None

    def test_auth_scheme_default(self) -> None:
        s = Settings(_env_file=None)
        assert s.auth_scheme == "bearer"

    def test_request_timeout_default(self) -> None:
        s = Settings(_env_file=None)
        assert s.request_timeout == 30.0

    def test_max_upload_bytes_default(self) -> None:
        s = Settings(_env_file=None)
        assert s.max_upload_bytes == 25 * 1024 * 1024

    def test_fetch_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.fetch_timeout == 30.0
        assert s.fetch_max_size is None

    def test_log_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.log_level == "info"
        assert s.log_json is False


class TestConfigFromEnv:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMG_STORE_API_KEY", "secret")
        monkeypatch.setenv("IMG_STORE_BASE_URL", "https://images.example.com")
        monkeypatch.setenv("IMG_STORE_AUTH_SCHEME", "api-key")
        s = Settings(_env_file=None)
        assert s.api_key == "secret"
        assert s.base_url == "https://images.example.com"
        assert s.auth_scheme == "api-key"

    def test_rejects_unknown_auth_scheme(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("IMG_STORE_AUTH_SCHEME", "basic")
        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_reads_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("IMG_STORE_REQUEST_TIMEOUT", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("IMG_STORE_REQUEST_TIMEOUT=5.5\n")
        s = Settings(_env_file=str(env_file))
        assert s.request_timeout == 5.5
