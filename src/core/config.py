from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    """Application settings"""
    # Listener
    PORT: int = 3000
    HOST: str = "0.0.0.0"
    LOG_LEVEL: str = "INFO"

    # Upstream chat-completion API, shared by every routed function
    UPSTREAM_URL: str = "https://nitec-ai.kz/api/chat/completions"
    UPSTREAM_API_KEY: str = ""
    UPSTREAM_TIMEOUT: Optional[float] = None  # seconds; None waits forever

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"  # Allow extra fields in the settings

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
