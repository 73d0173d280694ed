"""Error types raised by the score service."""


class ScoreboardError(Exception):
    """Base class for scoreboard errors."""


class ConfigurationError(ScoreboardError):
    """Required configuration is missing or invalid. Fatal at startup."""


class ValidationError(ScoreboardError):
    """A submission was rejected before touching the store."""


class StoreError(ScoreboardError):
    """The backing store could not be reached or returned malformed data."""
