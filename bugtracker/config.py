"""Bug Tracker configuration settings."""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Database
    DATABASE_URL: Optional[str] = None

    # JWT
    JWT_SECRET_KEY: str = Field(default="dev-secret-key-change-me-before-deploying")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Passwords
    PASSWORD_HASH_ITERATIONS: int = 310000

    # GitHub
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_TIMEOUT_SECONDS: float = 10.0
    GITHUB_USER_AGENT: str = "bug-tracker-app"

    # Application
    APP_NAME: str = "Bug Tracker"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    @property
    def cors_origins_list(self) -> List[str]:
        """Return the configured CORS origins as a sanitized list."""

        if not self.CORS_ORIGINS:
            return []

        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
