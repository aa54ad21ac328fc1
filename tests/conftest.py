"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncIterator, Callable, Iterable

import pytest
from loguru import logger

# Keep the developer's config.json out of the settings under test
os.environ.setdefault("CLAUDE_SDK_NO_FILESYSTEM_MODE", "true")


SAMPLE_STREAM = r"""event: message_start
data: {"type":"message_start","message":{"id":"msg_01XFDUDYJgAACzvnptvVoYEL","type":"message","role":"assistant","content":[],"model":"claude-sonnet-4-5-20250929","stop_reason":null,"stop_sequence":null,"usage":{"input_tokens":25,"output_tokens":1}}}

event: content_block_start
data: {"type":"content_block_start","index":0,"content_block":{"type":"text","text":""}}

event: ping
data: {"type": "ping"}

event: content_block_delta
data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hello"}}

event: content_block_delta
data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":", wörld 👋"}}

event: content_block_stop
data: {"type":"content_block_stop","index":0}

event: content_block_start
data: {"type":"content_block_start","index":1,"content_block":{"type":"tool_use","id":"toolu_01T1x1fJ34qAmk2tNTrN7Up6","name":"get_weather","input":{}}}

event: content_block_delta
data: {"type":"content_block_delta","index":1,"delta":{"type":"input_json_delta","partial_json":"{\"location\": \"San"}}

event: content_block_delta
data: {"type":"content_block_delta","index":1,"delta":{"type":"input_json_delta","partial_json":" Francisco, CA\"}"}}

event: content_block_stop
data: {"type":"content_block_stop","index":1}

event: message_delta
data: {"type":"message_delta","delta":{"stop_reason":"tool_use","stop_sequence":null},"usage":{"output_tokens":42}}

event: message_stop
data: {"type":"message_stop"}

""".encode("utf-8")

# Events in SAMPLE_STREAM once the ping is filtered out
SAMPLE_EVENT_TYPES = [
    "message_start",
    "content_block_start",
    "content_block_delta",
    "content_block_delta",
    "content_block_stop",
    "content_block_start",
    "content_block_delta",
    "content_block_delta",
    "content_block_stop",
    "message_delta",
    "message_stop",
]


@pytest.fixture
def sample_stream() -> bytes:
    """A complete streamed response with a text block and a tool_use block."""
    return SAMPLE_STREAM


@pytest.fixture
def sample_event_types() -> list[str]:
    return list(SAMPLE_EVENT_TYPES)


@pytest.fixture
def byte_source() -> Callable[[Iterable[bytes]], AsyncIterator[bytes]]:
    """Factory turning a list of chunks into an async byte stream."""

    async def _source(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
        for chunk in chunks:
            yield chunk

    return _source


@pytest.fixture
def split_every() -> Callable[[bytes, int], list[bytes]]:
    """Factory splitting bytes into fixed-size chunks."""

    def _split(data: bytes, size: int) -> list[bytes]:
        return [data[i : i + size] for i in range(0, len(data), size)]

    return _split


class LogCapture:
    def __init__(self):
        self.messages: list[str] = []

    def write(self, message) -> None:
        self.messages.append(str(message))

    @property
    def text(self) -> str:
        return "".join(self.messages)


@pytest.fixture
def caplog_loguru():
    """Capture claude_sdk log records, which the library disables by default."""
    capture = LogCapture()
    logger.enable("claude_sdk")
    handler_id = logger.add(capture.write, level="DEBUG", format="{level} {message}")
    yield capture
    logger.remove(handler_id)
    logger.disable("claude_sdk")
