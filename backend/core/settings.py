# core/settings.py
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Frontend
    FRONTEND_ORIGIN: str = "http://localhost:3000"

    # Database
    DATABASE_FOLDER: str = "data"
    DATABASE_URL: str = "sqlite:///data/devhabit.db"

    # Token
    TOKEN_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    ACCESS_TOKEN_SECRET_KEY: str = "dev-access-secret-change-me"
    REFRESH_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_SECRET_KEY: str = "dev-refresh-secret-change-me"

    # Encryption of third-party tokens at rest
    FERNET_KEY: Optional[str] = None
    FERNET_KEY_FILE: str = ".fernet.key"

    # GitHub integration
    GITHUB_API_BASE_URL: str = "https://api.github.com"
    GITHUB_AUTOMATION_ENABLED: bool = False
    GITHUB_AUTOMATION_SCAN_INTERVAL_MINUTES: int = 60

    # Request handling
    IDEMPOTENCY_TTL_MINUTES: int = 60
    IMPORT_MAX_FILE_SIZE_MB: int = 10

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"
        case_sensitive = True
        extra = "allow"

settings = Settings()
