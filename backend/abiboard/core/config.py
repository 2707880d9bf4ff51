from pydantic_settings import BaseSettings
from typing import List
import json
from pathlib import Path


def split_setting_list(raw: str, lowercase: bool = False) -> List[str]:
    """Comma-separated or JSON list value of an environment variable"""
    raw = (raw or "").strip()
    items: List[str]
    if raw.startswith("["):
        try:
            items = [str(item) for item in json.loads(raw)]
        except json.JSONDecodeError:
            items = raw.strip("[]").split(",")
    else:
        items = raw.split(",")

    cleaned = [item.strip().strip('"') for item in items if item.strip()]
    return [item.lower() for item in cleaned] if lowercase else cleaned


class Settings(BaseSettings):
    """Service settings, read from the environment and ``.env``"""

    # Application
    APP_NAME: str = "AbiBoard"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    SECRET_KEY: str
    API_VERSION: str = "v1"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False

    # Session tokens, issued by the school's session provider
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS
    CORS_ORIGINS_STR: str = "http://localhost:3000"

    # Profile images
    UPLOAD_PATH: str = "uploads"
    MAX_IMAGE_SIZE: int = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES_STR: str = "image/jpeg,image/png,image/webp"
    # A draft save may carry several images
    MAX_REQUEST_SIZE: int = 25 * 1024 * 1024

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 120
    PROFILE_SAVE_RATE_LIMIT: str = "30/minute"

    # Create the default Steckbrief fields on an empty registry
    SEED_DEFAULT_FIELDS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/abiboard.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return split_setting_list(self.CORS_ORIGINS_STR)

    @property
    def ALLOWED_IMAGE_TYPES(self) -> List[str]:
        return split_setting_list(self.ALLOWED_IMAGE_TYPES_STR, lowercase=True)

    @property
    def UPLOAD_DIR(self) -> Path:
        return Path(self.UPLOAD_PATH)

    def is_dev_mode(self) -> bool:
        return self.ENVIRONMENT == "development" or self.DEBUG


settings = Settings()
