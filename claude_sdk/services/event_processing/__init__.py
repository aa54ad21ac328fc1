from claude_sdk.services.event_processing.sse import (
    SSEFrameParser,
    SSEMessage,
    parse_frames,
)
from claude_sdk.services.event_processing.event_parser import (
    EventDecoder,
    EventParser,
    MessageStream,
)
from claude_sdk.services.event_processing.event_serializer import EventSerializer

__all__ = [
    "SSEFrameParser",
    "SSEMessage",
    "parse_frames",
    "EventDecoder",
    "EventParser",
    "MessageStream",
    "EventSerializer",
]
