"""
Application configuration loaded from environment variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""

    # Frontend URL for CORS and post-login redirects
    app_base_url: str = "http://localhost:5173"
    # Public URL of this API, when it differs from the frontend
    auth_base_url: Optional[str] = None

    # Session
    session_secret: str = "dev-secret-change-in-production"
    environment: str = "development"

    # Google endpoints
    google_auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_userinfo_url: str = "https://www.googleapis.com/oauth2/v3/userinfo"
    gmail_api_base: str = "https://gmail.googleapis.com/gmail/v1/users/me"

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Share one in-flight refresh between concurrent requests of a user
    token_refresh_dedupe: bool = True

    log_level: str = "INFO"

    @field_validator("session_secret")
    @classmethod
    def _check_secret_length(cls, value: str) -> str:
        if len(value) < 16:
            raise ValueError("SESSION_SECRET must be at least 16 characters long")
        return value

    @property
    def frontend_url(self) -> str:
        return self.app_base_url.rstrip("/")

    @property
    def redirect_uri(self) -> str:
        base = (self.auth_base_url or self.app_base_url).rstrip("/")
        return f"{base}/api/auth/callback"

    @property
    def secure_cookies(self) -> bool:
        return self.environment.lower() not in ("development", "dev", "local", "test")

    # Google OAuth scopes
    @property
    def google_scopes(self) -> list[str]:
        return [
            "https://www.googleapis.com/auth/gmail.readonly",
            "https://www.googleapis.com/auth/gmail.modify",
            "openid",
            "email",
            "profile",
        ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
