"""
Configuration management for the Operations Dashboard API
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Operations Dashboard API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./opsboard.db"

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Default admin account, created at startup when missing
    ADMIN_EMAIL: str = "admin@opsboard.local"
    ADMIN_PASSWORD: str = "admin123"
    ADMIN_CODE: str = "0000"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File storage (local disk, served under UPLOAD_URL_PREFIX)
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MB
    MAX_FILES_PER_DOCUMENT: int = 10

    # Pagination
    DEFAULT_PAGE_LIMIT: int = 10
    DEFAULT_CURSOR_LIMIT: int = 15
    MAX_PAGE_LIMIT: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
