"""Base transport interface."""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from typing import Protocol

from loguru import logger

from botline.directline.client import DirectLineClient
from botline.directline.models import Activity, ActivitySet, decode_payload
from botline.errors import PayloadError, TransportError
from botline.session import Session

# How long closing waits for the peer's close frame before aborting the socket.
PEER_CLOSE_TIMEOUT_SECONDS = 2.0


class InboundListener(Protocol):
    """Receiver of everything the inbound channel produces."""

    def on_batch(self, batch: ActivitySet) -> None: ...

    def on_malformed(self, error: PayloadError) -> None: ...

    def on_closed(self, error: Exception | None) -> None: ...


def tls_context() -> ssl.SSLContext:
    # The relay refuses handshakes below TLS 1.2.
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


def ssl_for(url: str) -> ssl.SSLContext | None:
    return tls_context() if url.startswith("wss://") else None


def dispatch_payload(raw: str | bytes, listener: InboundListener) -> None:
    """Decode one frame and hand the result to the listener."""
    try:
        batch = decode_payload(raw)
    except PayloadError as exc:
        logger.warning("transport.payload.malformed error={}", exc)
        listener.on_malformed(exc)
        return
    if batch is None:
        logger.trace("transport.payload.ping")
        return
    listener.on_batch(batch)


class BaseTransport(ABC):
    """Inbound channel plus outbound send for one conversation."""

    name: str = "base"

    def __init__(self, client: DirectLineClient, session: Session, *, open_timeout: float = 10.0) -> None:
        self.client = client
        self.session = session
        self.open_timeout = open_timeout
        self._closing = False

    @abstractmethod
    def connect(self, listener: InboundListener) -> None:
        """Open the inbound channel; returns once it is established."""

    @abstractmethod
    def close(self) -> None:
        """Close the inbound channel without notifying the listener."""

    def send(self, activity: Activity) -> str:
        return self.client.post_activity(self.session.token, self.session.conversation_id, activity)

    def history(self, watermark: str | None) -> ActivitySet:
        return self.client.get_activities(self.session.token, self.session.conversation_id, watermark)

    def _stream_url(self) -> str:
        url = self.session.stream_url
        if not url:
            raise TransportError(f"conversation {self.session.conversation_id} has no stream URL")
        return url

    def _notify_closed(self, listener: InboundListener, error: Exception | None) -> None:
        if self._closing:
            return
        logger.info("transport.closed name={} error={}", self.name, error)
        listener.on_closed(error)
