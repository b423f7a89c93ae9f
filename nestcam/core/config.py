"""Application configuration using Pydantic Settings"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # API
    API_V1_PREFIX: str = "/api/v1"
    # Stored as string to avoid pydantic-settings JSON parsing; use cors_origins_list property
    CORS_ORIGINS: str = "http://localhost:8581,http://localhost:8000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Nest account
    NEST_ACCESS_TOKEN: Optional[str] = None
    NEST_FIELD_TEST: bool = False

    # Alert polling
    NEST_ALERT_TYPES: str = ""  # Comma-separated, empty = any important event
    NEST_ALERT_COOLDOWN_RATE: int = 180  # seconds
    NEST_ALERT_CHECK_RATE: int = 10  # seconds
    NEST_STRUCTURES: str = ""  # Comma-separated structure ids, empty = all
    NEST_CAMERA_REFRESH_RATE: int = 600  # seconds between camera re-discovery, 0 = off

    # Accessory services
    NEST_MOTION_DETECTION: bool = True
    NEST_DOORBELL_ALERTS: bool = True
    NEST_DOORBELL_SWITCH: bool = True
    NEST_STREAMING_SWITCH: bool = False
    NEST_CHIME_SWITCH: bool = False
    NEST_AUDIO_SWITCH: bool = False

    @property
    def alert_types_list(self) -> List[str]:
        """Parse NEST_ALERT_TYPES from comma-separated string"""
        return [t.strip() for t in self.NEST_ALERT_TYPES.split(",") if t.strip()]

    @property
    def structures_list(self) -> List[str]:
        """Parse NEST_STRUCTURES from comma-separated string"""
        return [s.strip() for s in self.NEST_STRUCTURES.split(",") if s.strip()]

    @field_validator('NEST_ALERT_COOLDOWN_RATE', 'NEST_ALERT_CHECK_RATE', mode='after')
    @classmethod
    def validate_positive_rate(cls, v: int) -> int:
        """Polling and cooldown rates must be at least one second."""
        if v < 1:
            raise ValueError("rate must be at least 1 second")
        return v

    @field_validator('NEST_CAMERA_REFRESH_RATE', mode='after')
    @classmethod
    def validate_refresh_rate(cls, v: int) -> int:
        if v < 0:
            raise ValueError("NEST_CAMERA_REFRESH_RATE cannot be negative")
        return v

    @field_validator('LOG_LEVEL', mode='after')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
