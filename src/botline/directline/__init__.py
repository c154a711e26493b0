"""Direct Line client and wire models."""

from botline.directline.client import DirectLineClient
from botline.directline.models import (
    Activity,
    ActivitySet,
    ChannelAccount,
    Conversation,
    decode_payload,
    outbound_message,
)

__all__ = [
    "Activity",
    "ActivitySet",
    "ChannelAccount",
    "Conversation",
    "DirectLineClient",
    "decode_payload",
    "outbound_message",
]
