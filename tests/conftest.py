from __future__ import annotations

import pytest

from botline.config import Settings
from botline.session import Session
from fakes import FakeRenderer


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, endpoint="https://relay.test/", secret="s3cret", bot_id="bot-1")


@pytest.fixture
def session() -> Session:
    return Session(conversation_id="C1", token="tok-C1", stream_url="wss://relay.test/stream?t=tok-C1")


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()
