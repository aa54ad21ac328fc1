"""Async client for the Anthropic Messages API with a typed streaming decoder.

Example:
    >>> from claude_sdk import ClaudeClient, InputMessage, MessagesAPIRequest
    >>>
    >>> async with ClaudeClient(api_key="...") as client:
    ...     request = MessagesAPIRequest(
    ...         model="claude-sonnet-4-5-20250929",
    ...         max_tokens=1024,
    ...         messages=[InputMessage.user("Hello, Claude!")],
    ...     )
    ...     stream = await client.stream_message(request)
    ...     message = await stream.get_final_message()
"""

from loguru import logger

from claude_sdk.core.batches import BatchClient
from claude_sdk.core.client import ClaudeClient
from claude_sdk.core.config import Settings, settings
from claude_sdk.core.exceptions import (
    AppError,
    BatchNotReadyError,
    ClaudeApiError,
    ClaudeAuthenticationError,
    ClaudeConnectionError,
    ClaudeHttpError,
    ClaudeRateLimitedError,
    ClaudeServerError,
    ClaudeStreamingError,
    InvalidRequestError,
    NoAPIKeyProvidedError,
    StreamDecodeError,
    StreamStateError,
    StreamTransportError,
)
from claude_sdk.models.batches import (
    BatchesListResponse,
    BatchRequest,
    BatchResultLine,
    MessageBatch,
    RequestCounts,
)
from claude_sdk.models.claude import (
    ContentBlock,
    InputMessage,
    Message,
    MessagesAPIRequest,
    MessagesResponse,
    Role,
    Tool,
    ToolChoice,
    Usage,
)
from claude_sdk.models.streaming import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    Delta,
    ErrorEvent,
    ErrorInfo,
    Event,
    InputJsonDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    MessageStopEvent,
    PingEvent,
    SignatureDelta,
    TextDelta,
    ThinkingDelta,
)
from claude_sdk.services.event_processing.event_parser import (
    EventDecoder,
    EventParser,
    MessageStream,
)
from claude_sdk.services.event_processing.event_serializer import EventSerializer
from claude_sdk.services.event_processing.sse import SSEFrameParser, SSEMessage
from claude_sdk.services.message_collector import MessageCollector
from claude_sdk.utils.logger import configure_logger

# Library logging stays silent until configure_logger() or logger.enable("claude_sdk")
logger.disable("claude_sdk")

__all__ = [
    # Client
    "ClaudeClient",
    "BatchClient",
    "Settings",
    "settings",
    "configure_logger",
    # Errors
    "AppError",
    "BatchNotReadyError",
    "ClaudeApiError",
    "ClaudeAuthenticationError",
    "ClaudeConnectionError",
    "ClaudeHttpError",
    "ClaudeRateLimitedError",
    "ClaudeServerError",
    "ClaudeStreamingError",
    "InvalidRequestError",
    "NoAPIKeyProvidedError",
    "StreamDecodeError",
    "StreamStateError",
    "StreamTransportError",
    # Request / response models
    "ContentBlock",
    "InputMessage",
    "Message",
    "MessagesAPIRequest",
    "MessagesResponse",
    "Role",
    "Tool",
    "ToolChoice",
    "Usage",
    # Message Batches
    "BatchRequest",
    "BatchResultLine",
    "BatchesListResponse",
    "MessageBatch",
    "RequestCounts",
    # Events
    "Event",
    "MessageStartEvent",
    "ContentBlockStartEvent",
    "ContentBlockDeltaEvent",
    "ContentBlockStopEvent",
    "MessageDeltaEvent",
    "MessageStopEvent",
    "PingEvent",
    "ErrorEvent",
    "ErrorInfo",
    # Deltas
    "Delta",
    "TextDelta",
    "InputJsonDelta",
    "ThinkingDelta",
    "SignatureDelta",
    # Stream decoding
    "SSEFrameParser",
    "SSEMessage",
    "EventDecoder",
    "EventParser",
    "EventSerializer",
    "MessageStream",
    "MessageCollector",
]
