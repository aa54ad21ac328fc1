import codecs
import re
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

import httpx
from loguru import logger

from claude_sdk.core.exceptions import StreamTransportError

_LINE_END = re.compile(r"\r\n|\r|\n")

# Frames with this event name only announce the connection.
OPEN_EVENT = "open"


@dataclass
class SSEMessage:
    event: str = "message"
    data: str = ""
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEFrameParser:
    """Incremental server-sent-events frame splitter.

    Bytes go in through `feed` in chunks of any size; a frame comes out only
    after its terminating blank line has been seen. Partial lines, partial
    line terminators and partial UTF-8 sequences stay buffered between calls.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._buffer = ""
        self._seen_text = False
        self._event: Optional[str] = None
        self._data_lines: List[str] = []
        self._last_id: Optional[str] = None
        self._retry: Optional[int] = None

    def feed(self, chunk: bytes) -> List[SSEMessage]:
        try:
            text = self._decoder.decode(chunk)
        except UnicodeDecodeError as e:
            raise StreamTransportError(e)

        if text and not self._seen_text:
            self._seen_text = True
            if text.startswith("\ufeff"):
                text = text[1:]

        self._buffer += text
        return self._process_buffer()

    def close(self) -> List[SSEMessage]:
        """
        Signal end of input.

        Returns frames completed only by end of input (a final lone CR).
        Anything not terminated by a blank line is dropped.

        Raises:
            StreamTransportError: The input ended inside a UTF-8 sequence
        """
        try:
            self._buffer += self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as e:
            logger.error(f"Stream ended inside a multibyte character: {e}")
            raise StreamTransportError(e)

        frames = []
        if self._buffer.endswith("\r"):
            self._buffer += "\n"
            frames = self._process_buffer()

        if self._buffer.strip() or self._event is not None or self._data_lines:
            logger.warning(
                f"Discarding incomplete frame at end of stream: {self._buffer[:100]!r}"
            )
        self._buffer = ""
        self._reset_frame()
        return frames

    def _process_buffer(self) -> List[SSEMessage]:
        frames = []
        while True:
            match = _LINE_END.search(self._buffer)
            if match is None:
                break
            # A trailing CR may be the first half of CRLF
            if match.group() == "\r" and match.end() == len(self._buffer):
                break

            line = self._buffer[: match.start()]
            self._buffer = self._buffer[match.end() :]

            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def _process_line(self, line: str) -> Optional[SSEMessage]:
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data_lines.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        elif field == "retry":
            # ASCII digits only
            if value.isascii() and value.isdigit():
                self._retry = int(value)

        return None

    def _dispatch(self) -> Optional[SSEMessage]:
        if self._event is None and not self._data_lines:
            self._reset_frame()
            return None

        sse_msg = SSEMessage(
            event=self._event or "message",
            data="\n".join(self._data_lines),
            id=self._last_id,
            retry=self._retry,
        )
        self._reset_frame()

        if sse_msg.event == OPEN_EVENT:
            logger.debug("Connection open frame received")
            return None

        return sse_msg

    def _reset_frame(self) -> None:
        self._event = None
        self._data_lines = []
        self._retry = None


async def parse_frames(stream: AsyncIterator[bytes]) -> AsyncIterator[SSEMessage]:
    """
    Split a byte stream into SSE frames.

    Args:
        stream: AsyncIterator that yields raw byte chunks of arbitrary size

    Yields:
        SSEMessage objects in wire order

    Raises:
        StreamTransportError: The byte source failed or sent invalid UTF-8
    """
    parser = SSEFrameParser()
    chunks = stream.__aiter__()

    while True:
        try:
            chunk = await chunks.__anext__()
        except StopAsyncIteration:
            break
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Stream transport failed: {type(e).__name__}: {e}")
            raise StreamTransportError(e) from e

        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")

        for frame in parser.feed(chunk):
            yield frame

    for frame in parser.close():
        yield frame
