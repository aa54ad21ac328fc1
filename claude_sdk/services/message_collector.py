import json5
from typing import Dict, Optional
from loguru import logger

from claude_sdk.core.exceptions import StreamDecodeError, StreamStateError
from claude_sdk.models.claude import (
    ContentBlock,
    Message,
    ServerToolUseContent,
    TextContent,
    ThinkingContent,
    ToolUseContent,
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
    MessageDeltaUsage,
    MessageStartEvent,
    MessageStopEvent,
    SignatureDelta,
    TextDelta,
    ThinkingDelta,
)


class MessageCollector:
    """Accumulates streaming events into a complete Message.

    Content blocks must be opened by content_block_start before any delta or
    stop for the same index, and all of them must be stopped before
    message_stop. Anything else raises StreamStateError. Models are frozen,
    so every update replaces the stored block or message with a copy.
    """

    def __init__(self):
        self.message: Optional[Message] = None
        self.error: Optional[ErrorInfo] = None
        self.stopped = False
        self._blocks: Dict[int, ContentBlock] = {}
        self._open_blocks: set[int] = set()
        self._partial_json: Dict[int, str] = {}

    def feed(self, event: Event) -> None:
        if isinstance(event, MessageStartEvent):
            if self.message is not None:
                raise StreamStateError("Received message_start twice")
            self.message = event.message
            logger.debug(f"Message started: {self.message.id}")

        elif isinstance(event, ContentBlockStartEvent):
            self._require_message(event.type)
            if event.index in self._blocks:
                raise StreamStateError(
                    f"Content block {event.index} started twice",
                    context={"index": event.index},
                )
            self._blocks[event.index] = event.content_block
            self._open_blocks.add(event.index)
            logger.debug(
                f"Content block {event.index} started: {event.content_block.type}"
            )

        elif isinstance(event, ContentBlockDeltaEvent):
            block = self._require_open_block(event.index, event.type)
            self._blocks[event.index] = self._apply_delta(event.index, block, event.delta)

        elif isinstance(event, ContentBlockStopEvent):
            block = self._require_open_block(event.index, event.type)
            self._blocks[event.index] = self._finish_block(event.index, block)
            self._open_blocks.discard(event.index)
            logger.debug(f"Content block {event.index} stopped")

        elif isinstance(event, MessageDeltaEvent):
            message = self._require_message(event.type)
            update = {"usage": self._merge_usage(message.usage, event.usage)}
            if event.delta.stop_reason:
                update["stop_reason"] = event.delta.stop_reason
            if event.delta.stop_sequence:
                update["stop_sequence"] = event.delta.stop_sequence
            self.message = message.model_copy(update=update)

        elif isinstance(event, MessageStopEvent):
            self._require_message(event.type)
            if self._open_blocks:
                raise StreamStateError(
                    f"Received message_stop with content blocks {sorted(self._open_blocks)} still open",
                    context={"open_blocks": sorted(self._open_blocks)},
                )
            self.stopped = True
            logger.debug(f"Message stopped with {len(self._blocks)} content blocks")

        elif isinstance(event, ErrorEvent):
            logger.warning(
                f"Error event received: {event.error.kind}: {event.error.message}"
            )
            self.error = event.error

    def get_message(self) -> Message:
        """Return the message accumulated so far, blocks ordered by index."""
        message = self._require_message("get_message")
        return message.model_copy(
            update={"content": [self._blocks[index] for index in sorted(self._blocks)]}
        )

    def get_final_message(self) -> Message:
        """
        Return the completed message.

        Raises:
            StreamStateError: message_stop has not been received
        """
        if not self.stopped:
            raise StreamStateError(
                "Stream ended before message_stop",
                context={"open_blocks": sorted(self._open_blocks)},
            )
        return self.get_message()

    def _require_message(self, event_type: str) -> Message:
        if self.message is None:
            raise StreamStateError(f"Received {event_type} before message_start")
        return self.message

    def _require_open_block(self, index: int, event_type: str) -> ContentBlock:
        self._require_message(event_type)
        if index not in self._open_blocks:
            raise StreamStateError(
                f"Received {event_type} for content block {index} which is not open",
                context={"index": index},
            )
        return self._blocks[index]

    def _apply_delta(self, index: int, block: ContentBlock, delta: Delta) -> ContentBlock:
        """Return the block with the delta applied."""
        if isinstance(delta, TextDelta) and isinstance(block, TextContent):
            return block.model_copy(update={"text": block.text + delta.text})
        if isinstance(delta, ThinkingDelta) and isinstance(block, ThinkingContent):
            return block.model_copy(update={"thinking": block.thinking + delta.thinking})
        if isinstance(delta, SignatureDelta) and isinstance(block, ThinkingContent):
            return block.model_copy(
                update={"signature": (block.signature or "") + delta.signature}
            )
        if isinstance(delta, InputJsonDelta) and isinstance(
            block, (ToolUseContent, ServerToolUseContent)
        ):
            self._partial_json[index] = (
                self._partial_json.get(index, "") + delta.partial_json
            )
            return block

        raise StreamStateError(
            f"Cannot apply {delta.type} to {block.type} block {index}",
            context={"index": index},
        )

    def _finish_block(self, index: int, block: ContentBlock) -> ContentBlock:
        input_json = self._partial_json.pop(index, None)
        if input_json is None:
            return block

        if not input_json.strip():
            return block.model_copy(update={"input": {}})

        try:
            tool_input = json5.loads(input_json)
        except ValueError as e:
            raise StreamDecodeError("content_block_stop", input_json, str(e)) from e
        return block.model_copy(update={"input": tool_input})

    def _merge_usage(
        self, usage: Optional[Usage], delta_usage: MessageDeltaUsage
    ) -> Usage:
        if usage is None:
            usage = Usage(input_tokens=0, output_tokens=0)

        # message_delta counters are cumulative; unset ones keep the start values
        update = delta_usage.model_dump(
            include={
                "output_tokens",
                "input_tokens",
                "cache_creation_input_tokens",
                "cache_read_input_tokens",
                "server_tool_use",
            },
            exclude_none=True,
        )
        if delta_usage.server_tool_use is not None:
            update["server_tool_use"] = delta_usage.server_tool_use
        return usage.model_copy(update=update)
