"""
Configuration settings for the application
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # SQLite Database (Local)
    database_url: str = "sqlite+aiosqlite:///./data/fuddi.db"

    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    debug: bool = True
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Business rules
    timezone: str = "America/Guayaquil"
    search_debounce_ms: int = 500
    fallback_delivery_fee: float = 1.5
    immediate_eta_minutes: int = 30
    mixed_payment_tolerance: float = 0.01
    draft_ttl_seconds: int = 4 * 3600

    # Uploads (local stand-in for object storage)
    uploads_dir: str = "./data/uploads"
    uploads_base_url: str = "/uploads"
    image_max_size: int = 1024

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert comma-separated CORS origins to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000


# Global settings instance
settings = Settings()
