"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "worktrack"

    # JWT
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 10080  # 7 days

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Timers
    timer_tick_seconds: float = 1.0
    timer_refresh_ticks: int = 15
    transition_max_attempts: int = 3
    single_active_timer: bool = False
    bulk_max_items: int = 500

    # Grants for users without a stored permission record
    default_permissions: list[str] = [
        "time_sessions:create",
        "time_sessions:read",
        "time_sessions:update",
        "time_sessions:delete",
        "work_logs:read",
    ]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()
