"""Conversation session bootstrap."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from botline.config import Settings
from botline.directline.client import DirectLineClient
from botline.errors import BootstrapError, RelayServiceError


@dataclass(frozen=True)
class Session:
    """Live conversation handle for one run."""

    conversation_id: str
    token: str
    stream_url: str | None = None
    watermark: str | None = None


class SessionBootstrapper:
    """Start or resume a conversation and hand back a ready Session."""

    def __init__(self, client: DirectLineClient, settings: Settings) -> None:
        self._client = client
        self._secret = settings.secret or ""

    def start_new(self) -> Session:
        logger.info("relay.bootstrap.start_new")
        try:
            grant = self._client.generate_token(self._secret)
            if not grant.token:
                raise BootstrapError("relay service issued no token")
            conversation = self._client.start_conversation(grant.token)
        except RelayServiceError as exc:
            raise BootstrapError(f"could not start a conversation: {exc}") from exc

        conversation_id = conversation.conversation_id or grant.conversation_id
        if not conversation_id:
            raise BootstrapError("relay service returned no conversation id")
        logger.info("relay.bootstrap.started conversation_id={}", conversation_id)
        return Session(
            conversation_id=conversation_id,
            token=conversation.token or grant.token,
            stream_url=conversation.stream_url,
        )

    def resume(self, conversation_id: str, watermark: str | None = None) -> Session:
        conversation_id = conversation_id.strip()
        if not conversation_id:
            raise BootstrapError("a conversation id is required to resume")
        watermark = (watermark or "").strip() or None

        logger.info("relay.bootstrap.resume conversation_id={} watermark={}", conversation_id, watermark)
        try:
            conversation = self._client.reconnect(self._secret, conversation_id, watermark)
        except RelayServiceError as exc:
            raise BootstrapError(f"could not resume conversation {conversation_id}: {exc}") from exc

        if not conversation.token:
            raise BootstrapError(f"relay service issued no token for conversation {conversation_id}")
        return Session(
            conversation_id=conversation_id,
            token=conversation.token,
            stream_url=conversation.stream_url,
            watermark=watermark,
        )
