from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IMG_STORE_", env_file=".env", env_file_encoding="utf-8")

    app_name: str = "imgstore-client"
    log_level: str = "info"
    log_json: bool = False

    base_url: str = "http://localhost:8080"
    api_key: str | None = None
    auth_scheme: Literal["bearer", "api-key"] = "bearer"
    request_timeout: float = 30.0
    max_upload_bytes: int = 25 * 1024 * 1024
    user_agent: str = "imgstore-client/0.1"

    fetch_timeout: float = 30.0
    fetch_max_size: int | None = None


settings = Settings()
