from __future__ import annotations

import pytest

from botline.config import Settings
from botline.directline.models import Activity, ActivitySet, ChannelAccount, decode_payload
from botline.errors import PayloadError, RelayServiceError, TransportError
from botline.relay import RelayLoop, render_batch, visible_activities
from botline.session import Session
from fakes import FakeRenderer, FakeTransport


def _run(session: Session, settings: Settings, renderer: FakeRenderer, transport: FakeTransport) -> bool:
    return RelayLoop(session, transport, renderer, settings).run()  # type: ignore[arg-type]


def test_each_non_empty_line_sends_one_message(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    renderer.inputs = ["  hello  ", "how are you?", "bye"]
    transport = FakeTransport()

    assert _run(session, settings, renderer, transport) is True

    assert [activity.text for activity in transport.sent] == ["hello", "how are you?"]
    assert all(activity.type == "message" for activity in transport.sent)
    assert all(activity.from_ == ChannelAccount(id="DirectLine Console App") for activity in transport.sent)


@pytest.mark.parametrize("line", ["bye!", "Bye", "BYE", "say bye", "goodbye"])
def test_only_exact_exit_phrase_ends_the_loop(
    line: str, session: Session, settings: Settings, renderer: FakeRenderer
) -> None:
    renderer.inputs = [line, "bye", "never read"]
    transport = FakeTransport()

    _run(session, settings, renderer, transport)

    assert [activity.text for activity in transport.sent] == [line]
    assert renderer.inputs == ["never read"]


def test_exit_phrase_is_compared_after_trimming(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    renderer.inputs = ["   bye \t", "unreachable"]
    transport = FakeTransport()

    _run(session, settings, renderer, transport)

    assert transport.sent == []
    assert renderer.inputs == ["unreachable"]


def test_blank_input_is_skipped(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    renderer.inputs = ["", "   ", "\t", "bye"]
    transport = FakeTransport()

    _run(session, settings, renderer, transport)

    assert transport.sent == []
    assert renderer.inputs == []


def test_configured_exit_phrase(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    settings = settings.model_copy(update={"exit_phrase": "quit"})
    renderer.inputs = ["bye", "quit"]
    transport = FakeTransport()

    _run(session, settings, renderer, transport)

    assert [activity.text for activity in transport.sent] == ["bye"]


def test_new_conversation_scenario(settings: Settings, renderer: FakeRenderer) -> None:
    session = Session(conversation_id="C1", token="t", stream_url="wss://relay.test/s")
    renderer.inputs = ["hello", "bye"]
    transport = FakeTransport()

    assert _run(session, settings, renderer, transport) is True

    assert any("C1" in line for line in renderer.connected_to)
    assert len(transport.sent) == 1
    assert transport.sent[0].text == "hello"
    assert transport.closed is True


def test_end_of_input_ends_the_loop(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    renderer.inputs = ["hello"]
    transport = FakeTransport()

    assert _run(session, settings, renderer, transport) is True
    assert transport.closed is True


def test_connect_failure_is_reported(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    renderer.inputs = ["hello", "bye"]
    transport = FakeTransport(connect_error=TransportError("handshake refused"))

    assert _run(session, settings, renderer, transport) is False

    assert transport.sent == []
    assert transport.closed is True
    assert renderer.connected_to == []
    assert "handshake refused" in renderer.errors[0]


def test_send_failure_is_reported_and_loop_continues(
    session: Session, settings: Settings, renderer: FakeRenderer
) -> None:
    renderer.inputs = ["first", "second", "bye"]
    transport = FakeTransport(send_errors=[RelayServiceError("502 Bad Gateway", status_code=502)])

    assert _run(session, settings, renderer, transport) is True

    assert [activity.text for activity in transport.sent] == ["second"]
    assert renderer.errors == ["Message not delivered: 502 Bad Gateway"]


def test_inbound_batch_renders_only_messages(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    loop = RelayLoop(session, FakeTransport(), renderer, settings)  # type: ignore[arg-type]
    batch = ActivitySet(
        activities=[
            Activity(id="1", type="message", text="Hi there"),
            Activity(id="2", type="typing"),
        ]
    )

    loop.on_batch(batch)

    assert renderer.bot_messages == ["<Bot>: Hi there"]


def test_untyped_inbound_entry_is_not_rendered(renderer: FakeRenderer) -> None:
    batch = decode_payload('{"activities": [{"id": "1", "text": "no type here"}, {"type": "message", "text": "typed"}]}')
    assert batch is not None

    render_batch(batch, renderer)

    assert renderer.bot_messages == ["<Bot>: typed"]


def test_debug_mode_renders_every_activity(renderer: FakeRenderer) -> None:
    batch = ActivitySet(
        activities=[
            Activity(id="abc|0001", type="message", text="Hi there"),
            Activity(id="abc|0002", type="typing"),
        ]
    )

    render_batch(batch, renderer, mode="debug")

    assert renderer.debug_lines == ["abc|0001\tHi there", "abc|0002\t"]
    assert renderer.bot_messages == []


def test_sender_filter_keeps_bot_activities() -> None:
    batch = ActivitySet(
        activities=[
            Activity(type="message", id="1", text="echo", from_=ChannelAccount(id="DirectLine Console App")),
            Activity(type="message", id="2", text="reply", from_=ChannelAccount(id="bot-1", name="Bot")),
            Activity(type="message", id="3", text="anonymous"),
        ]
    )

    assert [a.text for a in visible_activities(batch)] == ["echo", "reply", "anonymous"]
    assert [a.text for a in visible_activities(batch, bot_id="bot-1")] == ["reply"]


def test_sender_filter_follows_settings(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    settings = settings.model_copy(update={"filter_by_sender": True})
    loop = RelayLoop(session, FakeTransport(), renderer, settings)  # type: ignore[arg-type]

    loop.on_batch(
        ActivitySet(
            activities=[
                Activity(type="message", text="mine", from_=ChannelAccount(id="DirectLine Console App")),
                Activity(type="message", text="theirs", from_=ChannelAccount(id="bot-1")),
            ]
        )
    )

    assert renderer.bot_messages == ["<Bot>: theirs"]


def test_malformed_payload_is_reported(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    loop = RelayLoop(session, FakeTransport(), renderer, settings)  # type: ignore[arg-type]

    loop.on_malformed(PayloadError("frame is not an activity set"))

    assert renderer.errors == ["Skipped a malformed message: frame is not an activity set"]


def test_lost_connection_interrupts_input(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    transport = FakeTransport()
    loop = RelayLoop(session, transport, renderer, settings)  # type: ignore[arg-type]

    def _inputs() -> str:
        loop.on_closed(ConnectionError("socket reset"))
        raise EOFError

    renderer.get_user_input = _inputs  # type: ignore[method-assign]

    assert loop.run() is False
    assert renderer.interrupted == 1
    assert renderer.errors == ["Connection lost: socket reset"]
    assert transport.closed is True


def test_close_after_exit_is_not_reported(session: Session, settings: Settings, renderer: FakeRenderer) -> None:
    renderer.inputs = ["bye"]
    transport = FakeTransport()
    loop = RelayLoop(session, transport, renderer, settings)  # type: ignore[arg-type]

    assert loop.run() is True
    loop.on_closed(None)

    assert renderer.errors == []
    assert renderer.interrupted == 0


def test_history_is_replayed_only_when_requested(settings: Settings, renderer: FakeRenderer) -> None:
    session = Session(conversation_id="C2", token="t", stream_url="wss://relay.test/s", watermark="5")
    backlog = ActivitySet(activities=[Activity(type="message", id="C2|6", text="earlier")], watermark="6")

    renderer.inputs = ["bye"]
    transport = FakeTransport(history=backlog)
    _run(session, settings, renderer, transport)
    assert transport.history_calls == []
    assert renderer.bot_messages == []

    renderer.inputs = ["bye"]
    transport = FakeTransport(history=backlog)
    _run(session, settings.model_copy(update={"replay_history": True}), renderer, transport)
    assert transport.history_calls == ["5"]
    assert renderer.bot_messages == ["<Bot>: earlier"]


def test_history_failure_is_not_fatal(settings: Settings, renderer: FakeRenderer) -> None:
    session = Session(conversation_id="C2", token="t", stream_url="wss://relay.test/s", watermark="5")
    settings = settings.model_copy(update={"replay_history": True})

    class _BrokenHistory(FakeTransport):
        def history(self, watermark: str | None) -> ActivitySet:
            raise RelayServiceError("404 Not Found", status_code=404)

    renderer.inputs = ["hello", "bye"]
    transport = _BrokenHistory()

    assert _run(session, settings, renderer, transport) is True
    assert renderer.errors == ["Could not load history: 404 Not Found"]
    assert [activity.text for activity in transport.sent] == ["hello"]
