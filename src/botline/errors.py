"""Application-level exception types for botline."""

from __future__ import annotations


class BotlineError(Exception):
    """Base exception for botline."""


class ConfigurationError(BotlineError):
    """Base exception for configuration and startup validation errors."""


class MissingSecretError(ConfigurationError):
    """Raised when the Direct Line secret is not configured."""


class MissingEndpointError(ConfigurationError):
    """Raised when the relay service endpoint is not configured."""


class InvalidEndpointError(ConfigurationError):
    """Raised when the relay service endpoint is not an http(s) URL."""


class RelayServiceError(BotlineError):
    """Raised when a call to the relay service fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BootstrapError(BotlineError):
    """Raised when a conversation cannot be started or resumed."""


class TransportError(BotlineError):
    """Raised when the inbound streaming channel cannot be opened."""


class PayloadError(BotlineError):
    """Raised when an inbound frame is not a valid activity set."""
