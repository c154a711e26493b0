"""Configuration management for botline."""

from pathlib import Path
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidEndpointError, MissingEndpointError, MissingSecretError

DEFAULT_FROM_USER = "DirectLine Console App"
DEFAULT_EXIT_PHRASE = "bye"

TransportKind = Literal["stream", "socket"]
RenderMode = Literal["bot", "debug"]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="BOTLINE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Relay service
    endpoint: Optional[str] = Field(None, description="Direct Line endpoint, e.g. https://directline.botframework.com/")
    secret: Optional[str] = Field(None, description="Direct Line secret used to mint conversation tokens")
    bot_id: Optional[str] = Field(None, description="Account id of the bot, used when filtering by sender")
    timeout_seconds: float = Field(default=30.0, description="Timeout for relay service requests in seconds")
    open_timeout_seconds: float = Field(default=10.0, description="Timeout for the websocket handshake in seconds")

    # Conversation
    # The sender label is chosen by this client; bots must not trust it for anything security sensitive.
    from_user: str = Field(default=DEFAULT_FROM_USER, description="Sender id attached to outbound messages")
    exit_phrase: str = Field(default=DEFAULT_EXIT_PHRASE, description="Input that ends the conversation")
    transport: TransportKind = Field(default="stream", description="Inbound transport: stream or socket")
    render_mode: RenderMode = Field(default="bot", description="Inbound rendering: bot or debug")
    replay_history: bool = Field(default=False, description="Replay the backlog after the watermark on resume")
    filter_by_sender: bool = Field(default=False, description="Only show activities sent by bot_id")

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")

    def ensure_ready(self) -> None:
        """Validate the settings needed to reach the relay service.

        Raises:
            MissingEndpointError: if no endpoint is configured
            InvalidEndpointError: if the endpoint is not an http(s) URL
            MissingSecretError: if no secret is configured
        """
        if not self.endpoint:
            raise MissingEndpointError("Relay endpoint not configured. Set BOTLINE_ENDPOINT.")
        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidEndpointError(f"Relay endpoint must be an http(s) URL, got {self.endpoint!r}.")
        if not self.secret:
            raise MissingSecretError("Direct Line secret not configured. Set BOTLINE_SECRET.")


def load_settings(env_file: Optional[Path] = Path(".env")) -> Settings:
    """Load settings from the environment and an optional dotenv file.

    Args:
        env_file: dotenv file to read, or None to read the environment only

    Returns:
        Settings instance
    """
    return Settings(_env_file=env_file)
