"""
ER Vision Proxy Configuration Module
Handles environment variables and application settings.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    gemini_api_key: str = ""  # Root provider key, never leaves the server

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 5050
    web_origin: str = "http://localhost:3000"  # Browser origin allowed by CORS
    log_level: str = "info"
    environment: str = "development"

    # Local development without a provider key
    mock_mode: bool = False

    # Models
    er_model: str = "gemini-robotics-er-1.5-preview"
    live_model: str = "gemini-2.5-flash-native-audio-preview-09-2025"

    # Ephemeral token lifetimes
    token_expire_minutes: int = 30
    token_new_session_minutes: int = 10

    # Request limits
    max_image_size_mb: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def mock_enabled(self) -> bool:
        """Mock mode is forced off in production whatever MOCK_MODE says."""
        return self.mock_mode and not self.is_production

    @property
    def max_image_bytes(self) -> int:
        return self.max_image_size_mb * 1024 * 1024

    def validate_credentials(self) -> None:
        """Fail fast when neither a provider key nor mock mode is available."""
        if not self.gemini_api_key and not self.mock_enabled:
            raise ValueError("GEMINI_API_KEY not set (enable MOCK_MODE for local development)")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
