import os
from pydantic import BaseModel

from music_library.core.errors import ConfigurationError


class Settings(BaseModel):
    service_name: str = os.getenv("SERVICE_NAME", "music-library")
    env: str = os.getenv("ENV", "development").lower()
    database_url: str = os.getenv("DATABASE_URL", "")

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "https://auth.music-library.local")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "music-library.api")
    jwt_ttl_minutes: int = int(os.getenv("JWT_TTL_MINUTES", "60"))

    spotify_client_id: str = os.getenv("SPOTIFY_CLIENT_ID", "")
    spotify_client_secret: str = os.getenv("SPOTIFY_CLIENT_SECRET", "")
    spotify_timeout_sec: float = float(os.getenv("SPOTIFY_TIMEOUT_SEC", "10.0"))

    app_base_url: str = os.getenv("APP_BASE_URL", "http://localhost:8000")
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "text")

    @property
    def is_production(self) -> bool:
        return self.env in ("prod", "production")

    def require_database(self) -> str:
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is not set")
        return self.database_url

    def require_spotify(self) -> tuple[str, str]:
        if not self.spotify_client_id or not self.spotify_client_secret:
            raise ConfigurationError("Spotify credentials not configured")
        return self.spotify_client_id, self.spotify_client_secret

    def check_startup(self) -> None:
        """Fail fast on configuration that must be present before serving."""
        self.require_database()
        if self.is_production and self.jwt_secret == "dev-secret":
            raise ConfigurationError("Refusing to start in production with the dev JWT_SECRET.")
        if not self.app_base_url:
            raise ConfigurationError("APP_BASE_URL is not set")


settings = Settings()
