"""Exception hierarchy shared across the relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Required configuration is missing or malformed."""


class VerificationError(RelayError):
    """Webhook signature headers are missing, stale, or do not match."""


class FetchError(RelayError):
    """The Render API answered with a non-2xx status."""

    def __init__(self, resource: str, status: int, url: str = "") -> None:
        self.resource = resource
        self.status = status
        self.url = url
        super().__init__(f"unable to fetch {resource} info; received code {status}")


class DeliveryError(RelayError):
    """The Discord channel could not be resolved or cannot receive messages."""
