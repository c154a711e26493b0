"""Push-callback streaming transport."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future, wait

from loguru import logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError, WebSocketException

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


class StreamingTransport(BaseTransport):
    """Asyncio websocket on a private event loop that pushes batches to the listener."""

    name = "stream"

    def __init__(self, client: DirectLineClient, session: Session, *, open_timeout: float = 10.0) -> None:
        super().__init__(client, session, open_timeout=open_timeout)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._connection: ClientConnection | None = None
        self._receiver: Future[None] | None = None

    def connect(self, listener: InboundListener) -> None:
        url = self._stream_url()
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="botline-stream", daemon=True)
        self._thread.start()

        opening = asyncio.run_coroutine_threadsafe(self._open(url), self._loop)
        try:
            self._connection = opening.result()
        except (OSError, TimeoutError, WebSocketException) as exc:
            self._stop_loop()
            raise TransportError(str(exc) or type(exc).__name__) from exc

        self._receiver = asyncio.run_coroutine_threadsafe(self._receive(self._connection, listener), self._loop)
        logger.info("transport.stream.connected conversation_id={}", self.session.conversation_id)

    def close(self) -> None:
        self._closing = True
        if self._loop is None:
            return
        try:
            if self._connection is not None:
                closing = asyncio.run_coroutine_threadsafe(self._connection.close(), self._loop)
                try:
                    closing.result(CLOSE_TIMEOUT_SECONDS)
                except TimeoutError:
                    logger.warning("transport.stream.close_timeout conversation_id={}", self.session.conversation_id)
            if self._receiver is not None:
                wait([self._receiver], timeout=CLOSE_TIMEOUT_SECONDS)
        finally:
            self._connection = None
            self._receiver = None
            self._stop_loop()

    async def _open(self, url: str) -> ClientConnection:
        return await connect(
            url,
            ssl=ssl_for(url),
            open_timeout=self.open_timeout,
            close_timeout=PEER_CLOSE_TIMEOUT_SECONDS,
        )

    async def _receive(self, connection: ClientConnection, listener: InboundListener) -> None:
        error: Exception | None = None
        try:
            async for data in connection:
                dispatch_payload(data, listener)
        except ConnectionClosedError as exc:
            error = exc
        except Exception as exc:
            logger.opt(exception=True).warning(
                "transport.stream.receive_failed conversation_id={}", self.session.conversation_id
            )
            error = exc
        self._notify_closed(listener, error)

    def _stop_loop(self) -> None:
        loop, thread = self._loop, self._thread
        self._loop = None
        self._thread = None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(CLOSE_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.warning("transport.stream.loop_stuck")
                return
        loop.close()
