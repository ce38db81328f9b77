"""
Exception types raised by the tracker.
"""


class TrackerError(Exception):
    """Base class for tracker errors."""


class NavigationError(TrackerError):
    """A results or detail page could not be loaded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"navigation to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class ConfigError(TrackerError):
    """Configuration is missing or invalid."""


class GatewayError(TrackerError):
    """The listing store is unavailable."""
