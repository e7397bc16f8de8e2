from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # LLM Configuration
    LLM_API_KEY: Optional[str] = None
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.3
    SUMMARY_MAX_TOKENS: int = 6000

    # Language Settings
    CAPTION_LANGUAGES: List[str] = ["th", "en", "th-TH", "en-US", "en-GB"]
    OUTPUT_LANG: str = "th"

    # Speech-to-text
    WHISPER_MODEL: str = "base"
    FALLBACK_AUDIO_BITRATE: str = "64"
    DOWNLOAD_AUDIO_BITRATE: str = "128"

    # System Settings
    LOG_LEVEL: str = "INFO"
    MAX_RETRIES: int = 3
    DEBUG: bool = False

    # Paths
    TEMP_DIR: str = "temp"
    TEMP_MAX_AGE_SECONDS: int = 3600
    CLEANUP_INTERVAL_SECONDS: int = 3600
    COOKIES_PATH: Optional[str] = None

    # Persistence
    DATABASE_URL: Optional[str] = None

    # HTTP
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
