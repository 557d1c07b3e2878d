from pathlib import Path

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meitre_mcp.storage.crypto import decode_key

# <project_root>/data, independent of the process working directory.
DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env file.

    ``ENCRYPTION_KEY`` is required: a base64-encoded 32-byte key used to
    encrypt cached Meitre tokens. A missing or malformed key fails here,
    at startup, rather than on the first request.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    encryption_key: str

    # Upstream
    meitre_base_url: str = "https://api.meitre.com/api"
    http_timeout: float = 30.0

    # HTTP server bind address
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000

    # Paths & logging
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "INFO"

    @field_validator("encryption_key")
    @classmethod
    def _check_encryption_key(cls, value: str) -> str:
        decode_key(value)
        return value

    @field_validator("meitre_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_path(self) -> Path:
        return self.data_dir / "tokens.db"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings singleton. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
