"""Library configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings for the metrics services, overridable through the environment."""

    # Database used by the persistence adapter
    DATABASE_URL: str = "sqlite:///./ridemetrics.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Training load (Performance Management Chart)
    CTL_TIME_CONSTANT: int = 42  # days (fitness)
    ATL_TIME_CONSTANT: int = 7   # days (fatigue)
    TRAINING_LOAD_LOOKBACK_DAYS: int = 90

    # Critical Power model
    DEFAULT_W_PRIME: float = 20000.0  # joules
    W_PRIME_MIN: float = 5000.0
    W_PRIME_MAX: float = 40000.0
    MIN_CRITICAL_POWER: float = 100.0  # watts
    HIGH_CONFIDENCE_R_SQUARED: float = 0.99

    # FTP auto-update
    FTP_HYSTERESIS_WATTS: int = 5
    FTP_ESTIMATION_WINDOW_DAYS: int = 42

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Create a global settings instance for direct import
settings = get_settings()
