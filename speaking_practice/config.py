"""
Application configuration and settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Gemini Configuration
    GEMINI_API_KEY: Optional[str] = None
    REALTIME_MODEL: str = "gemini-2.5-flash-native-audio-preview-09-2025"
    REALTIME_VOICE: str = "Zephyr"
    GRADING_MODEL: str = "gemini-2.5-flash"
    GRADING_TEMPERATURE: float = 0.3
    EPHEMERAL_TOKEN_TTL_MINUTES: int = 30

    # Audio Configuration
    SEND_SAMPLE_RATE: int = 16000
    RECEIVE_SAMPLE_RATE: int = 24000

    # Supabase Configuration
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    PASSAGES_TABLE: str = "passages"
    QUESTIONS_TABLE: str = "questions"
    SESSIONS_TABLE: str = "speaking_sessions"

    # Session Rules
    MIN_SESSION_SECONDS: int = 30
    GREETING_DELAY_SECONDS: float = 1.0
    GREETING_TEXT: str = "hi"
    PLACEHOLDER_USER_ID: str = "user_demo"

    # Timeouts
    CONNECT_TIMEOUT_SECONDS: float = 15.0
    GRADING_TIMEOUT_SECONDS: float = 60.0
    PERSIST_TIMEOUT_SECONDS: float = 15.0

    # API Configuration
    API_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Passage Speaking Practice API"
    API_VERSION: str = "1.0.0"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = [
        "*"
    ]

    # Logging
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
