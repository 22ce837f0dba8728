"""
Application settings and configuration module.
Loads environment variables and provides application configuration.
"""
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings class.
    Loads settings from environment variables and provides default values.
    """
    # Project settings
    PROJECT_NAME: str = "StreamFlix Administration API"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = Field(default=False)

    # Server settings
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./streamflix.db")
    DB_POOL_SIZE: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)  # seconds a caller waits for a connection
    DB_STATEMENT_TIMEOUT_SECONDS: int = Field(default=15)

    # Domain defaults
    DEFAULT_TRIAL_DAYS: int = Field(default=30)
    SEED_DEFAULT_PLANS: bool = Field(default=True)
    SQL_DUMP_PATH: Optional[str] = None

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            return "INFO"
        return v.upper()

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        return v

    class Config:
        """Pydantic config."""
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Initialize settings
settings = Settings()
