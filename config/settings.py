"""Application settings using Pydantic Settings."""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    mongodb_url: str = "mongodb://localhost:27017/?replicaSet=rs0"
    mongodb_db_name: str = "fitness_dashboard"

    # Application Configuration
    app_name: str = "Fitness Dashboard"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS Configuration
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Session Configuration (seconds an auth token stays valid)
    session_timeout: int = 60 * 60 * 24 * 7
    min_password_length: int = 6

    # Tracker Configuration
    default_calorie_target: int = 1500
    default_tz: str = "UTC"
    weight_chart_points: int = 30

    # Data Session Configuration (seconds)
    snapshot_timeout: float = 10.0
    session_sweep_interval: int = 300

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
