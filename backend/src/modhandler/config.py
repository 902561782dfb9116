from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MH_",
        extra="ignore",
    )

    engine_url: str = "http://127.0.0.1:8426"
    engine_timeout: float = 30.0
    host: str = "127.0.0.1"
    port: int = 8425
    listen_progress: bool = True
    progress_reconnect_delay: float = 2.0
    cors_origins: list[str] = ["http://localhost:1420", "https://tauri.localhost"]

    @field_validator("engine_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()
