"""
Core settings and environment variables for Participium.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Participium API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API (comma separated)
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"
    FRONTEND_URL: str = "http://localhost:5173"

    # Sessions and cookies
    SESSION_EXPIRES_IN_SECONDS: int = 86400
    SESSION_COOKIE_NAME: str = "session_token"
    COOKIE_HTTP_ONLY: bool = True
    COOKIE_SECURE: bool = False
    COOKIE_SAME_SITE: str = "lax"
    BCRYPT_ROUNDS: int = 10

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None

    # Reports
    ENFORCE_MUNICIPAL_BOUNDARY: bool = True
    NEARBY_DEFAULT_RADIUS_METERS: float = 5000.0

    # Geocoding (fills a missing report address)
    # - GEOCODING_PROVIDER: "nominatim" (default, no API key) or "google"
    # - GOOGLE_MAPS_API_KEY: optional; only used when provider is "google"
    GEOCODING_ENABLED: bool = True
    GEOCODING_PROVIDER: str = "nominatim"
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    GEOCODING_TIMEOUT_SECONDS: float = 3.0

    # E-mail (verification codes). Unset SMTP_USER means codes are only logged.
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "noreply@participium.local"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
