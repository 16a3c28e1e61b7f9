"""
Application configuration using Pydantic Settings
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    # Database
    DATABASE_URL: str = "sqlite:///./subtracker.db"

    # Security (session cookie signing)
    SECRET_KEY: str = "super-secret-key-change-me"

    # Application
    DEBUG: bool = False

    # Household defaults (used until the settings row exists)
    DEFAULT_CURRENCY: str = "USD"
    ESCALATION_THRESHOLD: float = 50.0
    CASHFLOW_WINDOW_DAYS: int = 30

    # Sensitive notes
    PIN_KDF_ITERATIONS: int = 100_000

    # Background scheduler
    SCHEDULER_ENABLED: bool = False
    ROLLOVER_HOUR_UTC: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_sqlalchemy_url(self) -> str:
        """
        Convert DATABASE_URL to SQLAlchemy format (postgresql+psycopg://)
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance (singleton)
    """
    return Settings()
