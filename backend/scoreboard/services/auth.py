"""Shared-secret API key verification."""
from typing import Optional
import secrets

from passlib.context import CryptContext

from scoreboard.errors import ConfigurationError
from scoreboard.settings import Settings

# Hashing context for SCOREBOARD_API_KEY_HASH
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_api_key_hash(api_key: str) -> str:
    """Hash an API key for SCOREBOARD_API_KEY_HASH."""
    return pwd_context.hash(api_key)


class ApiKeyVerifier:
    """Checks the x-api-key header against a plain secret or its hash."""

    def __init__(self, api_key: str = "", api_key_hash: Optional[str] = None):
        self.api_key = api_key
        self.api_key_hash = api_key_hash

    @classmethod
    def from_settings(cls, config: Settings) -> "ApiKeyVerifier":
        return cls(config.SCOREBOARD_API_KEY, config.SCOREBOARD_API_KEY_HASH)

    @property
    def configured(self) -> bool:
        return bool(self.api_key or self.api_key_hash)

    def check(self) -> None:
        """Raise ConfigurationError unless a usable secret is configured."""
        if not self.configured:
            raise ConfigurationError("SCOREBOARD_API_KEY or SCOREBOARD_API_KEY_HASH must be set")
        if self.api_key_hash and pwd_context.identify(self.api_key_hash) is None:
            raise ConfigurationError("SCOREBOARD_API_KEY_HASH is not a recognised passlib hash")

    def verify(self, candidate: Optional[str]) -> bool:
        if not candidate or not self.configured:
            return False
        # A configured hash takes precedence over the plain secret
        if self.api_key_hash:
            return pwd_context.verify(candidate, self.api_key_hash)
        return secrets.compare_digest(candidate.encode(), self.api_key.encode())
