"""Service configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Shared secret clients send in the x-api-key header.
    # Set SCOREBOARD_API_KEY_HASH instead to keep the plain secret out of the env.
    SCOREBOARD_API_KEY: str = ""
    SCOREBOARD_API_KEY_HASH: Optional[str] = None

    # Backing store: "firebase", "sqlite" or "memory"
    STORE_BACKEND: str = "firebase"
    FIREBASE_DATABASE_URL: Optional[str] = None  # e.g. https://<project>-default-rtdb.firebaseio.com
    FIREBASE_AUTH_TOKEN: Optional[str] = None  # database secret or ID token
    SQLITE_DATABASE_URL: str = "sqlite:///./data/scoreboard.db"
    SCORES_PATH: str = "/scores"
    STORE_TIMEOUT_SECONDS: float = 10.0

    # Comma-separated origin allow-list, "*" allows every origin
    CORS_ORIGINS: str = ""

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
