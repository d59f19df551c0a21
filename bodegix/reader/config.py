# bodegix/reader/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReaderSettings(BaseSettings):
    # backend base URL, /api/qr/scan is appended
    BODEGIX_API_URL: str = "http://localhost:5000"

    # credentials issued when the reader was registered
    READER_ID: int = 0
    READER_API_KEY: str = ""

    READER_TIMEOUT: float = 5.0
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
