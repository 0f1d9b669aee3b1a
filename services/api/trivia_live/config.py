"""
Application configuration via environment variables.
"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # App settings
    app_name: str = "Trivia Live API"
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    
    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    
    # Storage backend: "memory" for in-memory, "sql" for database
    storage_type: Literal["memory", "sql"] = "memory"
    
    # Database (only used when storage_type="sql")
    database_url: str = "sqlite+aiosqlite:///./dev.db"  # Default for dev
    
    # Game settings
    join_code_attempts: int = 50
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
