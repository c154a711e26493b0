"""Direct Line wire models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from botline.errors import PayloadError

MESSAGE_TYPE = "message"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChannelAccount(_WireModel):
    """Sender or recipient of an activity."""

    id: str
    name: str | None = None


class Activity(_WireModel):
    """One unit of conversational content."""

    type: str | None = None
    id: str | None = None
    text: str | None = None
    from_: ChannelAccount | None = Field(default=None, alias="from")

    @property
    def is_message(self) -> bool:
        return self.type == MESSAGE_TYPE

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ActivitySet(_WireModel):
    """Batch of activities pushed by the stream or returned by history."""

    activities: list[Activity] = Field(default_factory=list)
    watermark: str | None = None


class Conversation(_WireModel):
    """Conversation descriptor returned by token and conversation calls."""

    conversation_id: str | None = Field(default=None, alias="conversationId")
    token: str | None = None
    expires_in: int | None = None
    stream_url: str | None = Field(default=None, alias="streamUrl")


def outbound_message(text: str, from_user: str) -> Activity:
    """Build the message activity sent for one line of operator input."""
    return Activity(type=MESSAGE_TYPE, text=text, from_=ChannelAccount(id=from_user))


def decode_payload(raw: str | bytes) -> ActivitySet | None:
    """Decode one stream frame.

    Returns None for liveness pings (empty or whitespace-only frames).

    Raises:
        PayloadError: if the frame is not a JSON activity set
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PayloadError(f"frame is not valid utf-8: {exc}") from exc
    if not raw.strip():
        return None
    try:
        return ActivitySet.model_validate_json(raw)
    except ValidationError as exc:
        raise PayloadError(f"frame is not an activity set: {exc.error_count()} error(s)") from exc
