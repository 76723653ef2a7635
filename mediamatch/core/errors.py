"""Exception types raised by mediamatch."""


class MediaMatchError(Exception):
    """Base class for mediamatch errors."""


class ScrapeAlreadyRunningError(MediaMatchError):
    """A scrape job is already running for this service."""


class ProviderError(MediaMatchError):
    """The remote metadata provider failed to answer."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(MediaMatchError):
    """Configuration is missing or invalid."""
