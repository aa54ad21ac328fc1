from typing import AsyncIterator, Iterable

from claude_sdk.models.streaming import Event


class EventSerializer:
    """Serializes events back into SSE (Server-Sent Events) wire format."""

    async def serialize_stream(self, events: AsyncIterator[Event]) -> AsyncIterator[str]:
        """
        Serialize a stream of events into SSE format.

        Args:
            events: AsyncIterator that yields events

        Yields:
            String chunks in SSE format
        """
        async for event in events:
            yield self.serialize_event(event)

    def serialize_event(self, event: Event) -> str:
        """
        Serialize a single event into SSE format.

        Args:
            event: Event to serialize

        Returns:
            SSE formatted string terminated by a blank line
        """
        json_data = event.model_dump_json(exclude_none=True, by_alias=True)

        sse_parts = [f"event: {event.type}"]

        data_lines = json_data.split("\n")
        for line in data_lines:
            sse_parts.append(f"data: {line}")

        return "\n".join(sse_parts) + "\n\n"

    def serialize_batch(self, events: Iterable[Event]) -> str:
        """
        Serialize a batch of events into a single SSE string.

        Args:
            events: Events to serialize

        Returns:
            Concatenated SSE formatted string
        """
        return "".join(self.serialize_event(event) for event in events)
