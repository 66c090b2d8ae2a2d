"""Configuration errors."""

from cain.errors import InvalidInputError


class ConfigError(InvalidInputError):
    """Raised when configuration layers cannot be read, merged, or validated."""
