# settings.py
"""
Runtime configuration for the lost-and-found import backend.

Values come from environment variables or from a ``.env`` file placed next
to this module. Names are matched case-insensitively.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================
# SETTINGS
# ============================================

# Absolute path to the optional .env file
env_path = Path(__file__).resolve().parent / ".env"


class Settings(BaseSettings):
    """Loads environment variables, falling back to the .env file"""

    # Language model
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.0
    OPENAI_TIMEOUT: float = 120.0  # seconds, per request

    # CSV input
    CSV_DELIMITER: str = ";"

    # Local key/value store holding review drafts
    STORAGE_URL: str = "sqlite:///./lostfound_storage.db"

    # HTTP
    CORS_ORIGINS: List[str] = ["*"]
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=str(env_path),
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.OPENAI_API_KEY and self.OPENAI_API_KEY.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance"""
    return Settings()
