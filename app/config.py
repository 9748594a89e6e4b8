from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    """Application settings"""
    # Database
    database_url: str = "sqlite+aiosqlite:///./skintrack.db"

    # Tracking windows
    default_required_days: int = 28
    concern_required_days: dict[str, int] = {}

    # Service
    log_level: str = "INFO"
    cors_origins: str = "*"

    class Config:
        env_file = '.env'

    def required_days_for(self, concern: str) -> int:
        """Tracking window for a concern, falling back to the default."""
        return self.concern_required_days.get(concern, self.default_required_days)

    @property
    def allowed_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
