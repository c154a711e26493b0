"""Inbound transports."""

from __future__ import annotations

from botline.directline.client import DirectLineClient
from botline.errors import ConfigurationError
from botline.session import Session
from botline.transports.base import BaseTransport, InboundListener, dispatch_payload, tls_context
from botline.transports.raw import SocketTransport
from botline.transports.stream import StreamingTransport

TRANSPORTS: dict[str, type[BaseTransport]] = {
    StreamingTransport.name: StreamingTransport,
    SocketTransport.name: SocketTransport,
}


def build_transport(
    kind: str,
    client: DirectLineClient,
    session: Session,
    *,
    open_timeout: float = 10.0,
) -> BaseTransport:
    transport_cls = TRANSPORTS.get(kind)
    if transport_cls is None:
        raise ConfigurationError(f"Unknown transport {kind!r}; expected one of {', '.join(sorted(TRANSPORTS))}.")
    return transport_cls(client, session, open_timeout=open_timeout)


__all__ = [
    "TRANSPORTS",
    "BaseTransport",
    "InboundListener",
    "SocketTransport",
    "StreamingTransport",
    "build_transport",
    "dispatch_payload",
    "tls_context",
]
