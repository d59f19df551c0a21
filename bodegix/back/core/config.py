# bodegix/back/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Signs bearer tokens; override in .env for anything but local work
    SECRET_KEY: str = "change-this-secret-in-env"

    ENV: str = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # postgresql://... in production, sqlite+aiosqlite:// locally
    DATABASE_URL: str
    DB_SSL: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # QR access sessions
    QR_TTL_SECONDS: int = 15
    QR_CODE_BYTES: int = 16          # 16 bytes -> 32 hex chars (128 bits)
    QR_CODE_MAX_ATTEMPTS: int = 5
    QR_PAYLOAD_PREFIX: str = "BODEGIX"
    QR_PUBLIC_BASE_URL: str = "https://bodegix.app"

    # Bearer tokens: HS256 JWTs signed by the login service with SECRET_KEY
    JWT_ALGORITHM: str = "HS256"
    # exp claim put on tokens signed here (tests, tooling); 0 = no exp
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 60 * 60 * 24

    # Locker controller (unlock actuator). Empty = log only
    LOCKER_CONTROLLER_URL: str = ""
    LOCKER_CONTROLLER_TIMEOUT: float = 5.0


settings = Settings()
