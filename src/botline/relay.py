"""Interactive relay loop between the console and a conversation."""

from __future__ import annotations

import threading
from typing import Protocol

from loguru import logger

from botline.config import Settings
from botline.directline.models import Activity, ActivitySet, outbound_message
from botline.errors import PayloadError, RelayServiceError, TransportError
from botline.session import Session
from botline.transports.base import BaseTransport


class ConsoleRenderer(Protocol):
    def error(self, message: str) -> None: ...

    def connected(self, conversation_id: str) -> None: ...

    def bot_message(self, text: str) -> None: ...

    def debug_activity(self, activity_id: str, text: str) -> None: ...

    def get_user_input(self) -> str: ...

    def interrupt_input(self) -> None: ...


def visible_activities(batch: ActivitySet, *, bot_id: str | None = None) -> list[Activity]:
    """Message activities worth showing, optionally narrowed to one sender."""
    selected = [activity for activity in batch.activities if activity.is_message]
    if bot_id:
        selected = [a for a in selected if a.from_ is not None and a.from_.id == bot_id]
    return selected


def render_batch(
    batch: ActivitySet,
    renderer: ConsoleRenderer,
    *,
    mode: str = "bot",
    bot_id: str | None = None,
) -> None:
    if mode == "debug":
        for activity in batch.activities:
            renderer.debug_activity(activity.id or "-", activity.text or "")
        return
    for activity in visible_activities(batch, bot_id=bot_id):
        renderer.bot_message(activity.text or "")


class RelayLoop:
    """Stream inbound batches to the console and relay typed lines outbound."""

    def __init__(
        self,
        session: Session,
        transport: BaseTransport,
        renderer: ConsoleRenderer,
        settings: Settings,
    ) -> None:
        self.session = session
        self._transport = transport
        self._renderer = renderer
        self._exit_phrase = settings.exit_phrase
        self._from_user = settings.from_user
        self._render_mode = settings.render_mode
        self._bot_id = settings.bot_id if settings.filter_by_sender else None
        self._replay_history = settings.replay_history
        self._stop_event = threading.Event()
        self._failed = False

    def run(self) -> bool:
        """Block until the operator leaves; return False if the channel failed."""
        try:
            self._transport.connect(self)
        except TransportError as exc:
            logger.warning("relay.connect.failed transport={} error={}", self._transport.name, exc)
            self._renderer.error(f"There was a problem with the web socket connection. {exc}")
            self._transport.close()
            return False

        try:
            self._renderer.connected(self.session.conversation_id)
            self._replay()
            self._input_loop()
        finally:
            self._stop_event.set()
            self._transport.close()
        logger.info("relay.run.finished conversation_id={} failed={}", self.session.conversation_id, self._failed)
        return not self._failed

    def on_batch(self, batch: ActivitySet) -> None:
        render_batch(batch, self._renderer, mode=self._render_mode, bot_id=self._bot_id)

    def on_malformed(self, error: PayloadError) -> None:
        self._renderer.error(f"Skipped a malformed message: {error}")

    def on_closed(self, error: Exception | None) -> None:
        if self._stop_event.is_set():
            return
        self._failed = True
        self._stop_event.set()
        reason = str(error) if error is not None else "closed by the relay service"
        self._renderer.error(f"Connection lost: {reason}")
        self._renderer.interrupt_input()

    def _replay(self) -> None:
        watermark = self.session.watermark
        if not self._replay_history or watermark is None:
            return
        try:
            backlog = self._transport.history(watermark)
        except RelayServiceError as exc:
            logger.warning("relay.history.failed conversation_id={} error={}", self.session.conversation_id, exc)
            self._renderer.error(f"Could not load history: {exc}")
            return
        self.on_batch(backlog)

    def _input_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                user_input = self._renderer.get_user_input()
            except (KeyboardInterrupt, EOFError):
                break
            text = user_input.strip()
            if text == self._exit_phrase:
                break
            if not text:
                continue
            self._send(text)

    def _send(self, text: str) -> None:
        activity = outbound_message(text, self._from_user)
        try:
            activity_id = self._transport.send(activity)
        except RelayServiceError as exc:
            logger.warning("relay.send.failed conversation_id={} error={}", self.session.conversation_id, exc)
            self._renderer.error(f"Message not delivered: {exc}")
            return
        logger.debug("relay.send.ok conversation_id={} activity_id={}", self.session.conversation_id, activity_id)
