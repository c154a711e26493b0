"""Raw websocket transport."""

from __future__ import annotations

import threading
from typing import Any

from blinker import Signal
from loguru import logger
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException
from websockets.sync.client import ClientConnection, connect

from botline.directline.client import DirectLineClient
from botline.errors import TransportError
from botline.session import Session
from botline.transports.base import (
    PEER_CLOSE_TIMEOUT_SECONDS,
    BaseTransport,
    InboundListener,
    dispatch_payload,
    ssl_for,
)

CLOSE_TIMEOUT_SECONDS = 5.0


class SocketTransport(BaseTransport):
    """Blocking websocket with a reader thread that raises one event per frame."""

    name = "socket"

    def __init__(self, client: DirectLineClient, session: Session, *, open_timeout: float = 10.0) -> None:
        super().__init__(client, session, open_timeout=open_timeout)
        self.message_received = Signal("botline.socket.message")
        self._connection: ClientConnection | None = None
        self._reader: threading.Thread | None = None
        self._listener: InboundListener | None = None

    def connect(self, listener: InboundListener) -> None:
        url = self._stream_url()
        try:
            self._connection = connect(
                url,
                ssl=ssl_for(url),
                open_timeout=self.open_timeout,
                close_timeout=PEER_CLOSE_TIMEOUT_SECONDS,
            )
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc

        self._listener = listener
        self.message_received.connect(self._on_message, weak=False)
        self._reader = threading.Thread(target=self._read_frames, name="botline-socket", daemon=True)
        self._reader.start()
        logger.info("transport.socket.connected conversation_id={}", self.session.conversation_id)

    def close(self) -> None:
        self._closing = True
        self.message_received.disconnect(self._on_message)
        if self._connection is not None:
            self._connection.close()
        if self._reader is not None:
            self._reader.join(CLOSE_TIMEOUT_SECONDS)
        self._connection = None
        self._reader = None

    def _read_frames(self) -> None:
        assert self._connection is not None
        assert self._listener is not None
        error: Exception | None = None
        try:
            for data in self._connection:
                self.message_received.send(self, data=data)
        except ConnectionClosedError as exc:
            error = exc
        except ConnectionClosed:
            pass
        except Exception as exc:
            logger.opt(exception=True).warning(
                "transport.socket.receive_failed conversation_id={}", self.session.conversation_id
            )
            error = exc
        self._notify_closed(self._listener, error)

    def _on_message(self, _sender: Any, *, data: str | bytes) -> None:
        if self._listener is not None:
            dispatch_payload(data, self._listener)
