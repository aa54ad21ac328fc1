from typing import Annotated, Optional, Union, Literal
from pydantic import BaseModel, RootModel, ConfigDict, Field

from .claude import ContentBlock, Message, ServerToolUsage, StopReason


# Base event types
class BaseEvent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: str


class BaseDelta(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


# Delta types
class TextDelta(BaseDelta):
    type: Literal["text_delta"] = "text_delta"
    text: str


class InputJsonDelta(BaseDelta):
    """Fragment of a tool input. Fragments for one index concatenate into JSON."""

    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str


class ThinkingDelta(BaseDelta):
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str


class SignatureDelta(BaseDelta):
    type: Literal["signature_delta"] = "signature_delta"
    signature: str


Delta = Annotated[
    Union[TextDelta, InputJsonDelta, ThinkingDelta, SignatureDelta],
    Field(discriminator="type"),
]


class MessageDeltaData(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    stop_reason: Optional[StopReason] = None
    stop_sequence: Optional[str] = None


class MessageDeltaUsage(BaseModel):
    """Cumulative usage counters reported by message_delta."""

    model_config = ConfigDict(extra="allow", frozen=True)
    output_tokens: int
    input_tokens: Optional[int] = None
    cache_creation_input_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None
    server_tool_use: Optional[ServerToolUsage] = None


# Error model
class ErrorInfo(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)
    kind: str = Field(alias="type")
    message: str


# Event models
class MessageStartEvent(BaseEvent):
    type: Literal["message_start"] = "message_start"
    message: Message


class ContentBlockStartEvent(BaseEvent):
    type: Literal["content_block_start"] = "content_block_start"
    index: int = Field(ge=0)
    content_block: ContentBlock


class ContentBlockDeltaEvent(BaseEvent):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: int = Field(ge=0)
    delta: Delta

    @property
    def text(self) -> Optional[str]:
        return self.delta.text if isinstance(self.delta, TextDelta) else None

    @property
    def partial_json(self) -> Optional[str]:
        if isinstance(self.delta, InputJsonDelta):
            return self.delta.partial_json
        return None


class ContentBlockStopEvent(BaseEvent):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int = Field(ge=0)


class MessageDeltaEvent(BaseEvent):
    type: Literal["message_delta"] = "message_delta"
    delta: MessageDeltaData
    usage: MessageDeltaUsage


class MessageStopEvent(BaseEvent):
    type: Literal["message_stop"] = "message_stop"


class PingEvent(BaseEvent):
    type: Literal["ping"] = "ping"


class ErrorEvent(BaseEvent):
    type: Literal["error"] = "error"
    error: ErrorInfo


Event = Annotated[
    Union[
        MessageStartEvent,
        ContentBlockStartEvent,
        ContentBlockDeltaEvent,
        ContentBlockStopEvent,
        MessageDeltaEvent,
        MessageStopEvent,
        PingEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]


class StreamingEvent(RootModel):
    """Validates a raw payload into exactly one Event variant by its `type` field."""

    root: Event
