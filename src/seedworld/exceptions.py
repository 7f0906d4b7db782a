"""Custom exceptions for world generation."""


class SeedWorldError(Exception):
    """Base exception for seedworld errors."""

    pass


class ConfigError(SeedWorldError):
    """Raised when a world config document cannot be parsed or validated."""

    pass


class MapFormatError(SeedWorldError, ValueError):
    """Raised when a saved map file is missing required data."""

    pass
