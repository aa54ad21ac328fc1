import asyncio
import json
import weakref
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Optional, Set

from loguru import logger
from pydantic import ValidationError

from claude_sdk.core.exceptions import ClaudeStreamingError, StreamDecodeError
from claude_sdk.models.claude import Message
from claude_sdk.models.streaming import (
    ContentBlockDeltaEvent,
    ErrorEvent,
    ErrorInfo,
    Event,
    MessageStopEvent,
    PingEvent,
    StreamingEvent,
    TextDelta,
)
from claude_sdk.services.event_processing.sse import SSEMessage, parse_frames
from claude_sdk.services.message_collector import MessageCollector

PING_EVENT = "ping"
ERROR_EVENT = "error"


class EventDecoder:
    """Maps one SSE frame to a typed event."""

    def decode(self, sse_msg: SSEMessage) -> Optional[Event]:
        """
        Decode a single frame.

        Args:
            sse_msg: The parsed SSE frame

        Returns:
            The event, or None when the frame carries nothing to decode

        Raises:
            StreamDecodeError: The payload is not valid JSON or matches no event shape
        """
        if sse_msg.event == PING_EVENT:
            return PingEvent()

        if sse_msg.event == ERROR_EVENT:
            return self._decode_error(sse_msg)

        if not sse_msg.data:
            if sse_msg.event == "message_stop":
                return MessageStopEvent()
            logger.debug(f"Skipping {sse_msg.event} frame with empty payload")
            return None

        data = self._load_json(sse_msg)

        try:
            event = StreamingEvent.model_validate(data).root
        except ValidationError as e:
            logger.error(f"Failed to validate {sse_msg.event} event: {e}")
            logger.debug(f"Raw data: {sse_msg.data}")
            raise StreamDecodeError(sse_msg.event, sse_msg.data, str(e)) from e

        if sse_msg.event != "message" and event.type != sse_msg.event:
            logger.debug(
                f"Frame name {sse_msg.event} disagrees with payload type {event.type}"
            )

        return event

    def _decode_error(self, sse_msg: SSEMessage) -> ErrorEvent:
        data = self._load_json(sse_msg)

        # The API wraps the error: {"type": "error", "error": {...}}
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            data = data["error"]

        try:
            error = ErrorInfo.model_validate(data)
        except ValidationError as e:
            logger.error(f"Failed to validate error event: {e}")
            raise StreamDecodeError(sse_msg.event, sse_msg.data, str(e)) from e

        return ErrorEvent(error=error)

    def _load_json(self, sse_msg: SSEMessage):
        try:
            return json.loads(sse_msg.data)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON data: {e}")
            logger.debug(f"Raw data: {sse_msg.data}")
            raise StreamDecodeError(
                sse_msg.event, sse_msg.data, f"invalid JSON: {e}"
            ) from e


class EventParser:
    """Parses SSE (Server-Sent Events) byte streams into typed events."""

    def __init__(
        self, include_pings: bool = False, decoder: Optional[EventDecoder] = None
    ):
        self.include_pings = include_pings
        self.decoder = decoder or EventDecoder()

    async def parse_stream(self, stream: AsyncIterator[bytes]) -> AsyncIterator[Event]:
        """
        Parse an SSE stream and yield events in wire order.

        Args:
            stream: AsyncIterator that yields byte chunks from the SSE stream

        Yields:
            Event objects parsed from the stream. Frames that decode to nothing
            and, unless include_pings is set, keepalive pings are left out.
        """
        async with aclosing(parse_frames(stream)) as frames:
            async for sse_msg in frames:
                event = self.decoder.decode(sse_msg)
                if event is None:
                    continue
                if isinstance(event, PingEvent) and not self.include_pings:
                    continue

                logger.debug(f"Parsed event: {event.type}")
                yield event


class TransportRelease:
    """Runs the transport's close callback at most once."""

    def __init__(self, on_close: Optional[Callable[[], Awaitable[None]]] = None):
        self._on_close = on_close
        self.released = False

    async def __call__(self) -> None:
        if self.released:
            return
        self.released = True
        if self._on_close is not None:
            logger.debug("Releasing stream transport")
            await self._on_close()


# Release tasks scheduled for dropped streams; the loop only keeps weak references.
_pending_releases: Set[asyncio.Task] = set()


def _release_dropped(release: TransportRelease) -> None:
    if release.released:
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("MessageStream dropped outside an event loop; transport not released")
        return

    logger.debug("MessageStream dropped before close, scheduling transport release")
    task = loop.create_task(release())
    _pending_releases.add(task)
    task.add_done_callback(_pending_releases.discard)


class MessageStream:
    """
    Forward-only stream of events for one Messages API response.

    The stream owns the transport: `on_close` runs exactly once, when the
    events run out, when decoding or the transport fails, when the caller
    closes the stream early, or when an unclosed stream is garbage collected.
    Use it as an async context manager so early exits release the connection
    promptly. A finished stream cannot be restarted.
    """

    def __init__(
        self,
        stream: AsyncIterator[bytes],
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
        parser: Optional[EventParser] = None,
    ):
        self._events = (parser or EventParser()).parse_stream(stream)
        self._release = TransportRelease(on_close)
        self._finalizer = weakref.finalize(self, _release_dropped, self._release)
        self._finished = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "MessageStream":
        return self

    async def __anext__(self) -> Event:
        if self._finished:
            raise StopAsyncIteration

        try:
            return await self._events.__anext__()
        except BaseException:
            self._finished = True
            await self.aclose()
            raise

    async def aclose(self) -> None:
        """Stop the stream and release the transport. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._finished = True
        self._finalizer.detach()

        try:
            await self._events.aclose()
        finally:
            await self._release()

    async def __aenter__(self) -> "MessageStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def text_stream(self) -> AsyncIterator[str]:
        """Yield only the text fragments of the response."""
        async for event in self:
            if isinstance(event, ContentBlockDeltaEvent) and isinstance(
                event.delta, TextDelta
            ):
                yield event.delta.text

    async def get_final_message(self) -> Message:
        """
        Consume the rest of the stream and return the assembled message.

        Raises:
            ClaudeStreamingError: The server sent an error event
            StreamStateError: Events arrived out of order or the stream ended
                before message_stop
        """
        collector = MessageCollector()
        try:
            async for event in self:
                collector.feed(event)
                if collector.error is not None:
                    raise ClaudeStreamingError(
                        error_type=collector.error.kind,
                        error_message=collector.error.message,
                    )
        finally:
            await self.aclose()

        return collector.get_final_message()
