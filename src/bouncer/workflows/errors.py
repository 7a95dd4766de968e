"""Exception types raised by the bouncer workflows."""

from __future__ import annotations


class BouncerError(Exception):
    """Base class for faults that abort a bouncer run."""


class ConfigError(BouncerError, ValueError):
    """The configuration file is missing, malformed or invalid."""


class PageFetchError(BouncerError):
    """A wiki page could not be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class SessionError(BouncerError):
    """The MUSH session failed while connecting, writing or draining."""
