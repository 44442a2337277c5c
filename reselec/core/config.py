# reselec/core/config.py

from typing import List
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# project root (the directory holding pyproject.toml and .env)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    Application settings, loaded from environment variables and the project `.env` file.
    """

    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    # --- application ---
    APP_NAME: str = "ETS Reselec API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Industrial equipment maintenance management API"
    APP_ENV: str = Field("development", description="Application environment (development, production, testing)")
    DEBUG_MODE: bool = Field(False, description="Enable debug logging and SQL echo")

    # --- database ---
    DATABASE_URL: SecretStr = Field(..., description="Async database URL (postgresql+asyncpg:// or sqlite+aiosqlite://)")

    # --- JWT ---
    SECRET_KEY: SecretStr = Field(..., description="Secret key for JWT token signing")
    ALGORITHM: str = Field("HS256", description="Algorithm used for JWT signing")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24, description="Access token lifetime in minutes")

    # --- HTTP ---
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    # --- background worker (arq) ---
    ARQ_ENABLED: bool = Field(True, description="Open an arq Redis pool at startup")
    REDIS_HOST: str = Field("localhost", description="Redis host used by arq")
    REDIS_PORT: int = Field(6379, description="Redis port used by arq")

    # --- business defaults ---
    DEFAULT_ROLE_NAME: str = Field("Technicien", description="Role given to self-registered users")
    DEFAULT_PAGE_SIZE: int = Field(10, ge=1)
    MAX_PAGE_SIZE: int = Field(100, ge=1)


settings = Settings()
