import asyncio
from typing import TYPE_CHECKING, AsyncIterator, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from claude_sdk.core.config import settings
from claude_sdk.core.exceptions import (
    BatchNotReadyError,
    StreamDecodeError,
    StreamTransportError,
)
from claude_sdk.models.batches import (
    BatchesListResponse,
    BatchRequest,
    BatchResultLine,
    CreateBatchRequest,
    MessageBatch,
)

if TYPE_CHECKING:
    from claude_sdk.core.client import ClaudeClient


class BatchClient:
    """Message Batches API, reached through ``ClaudeClient.batches``.

    Shares the owning client's session, headers and retry policy.

    Example:
        >>> async with ClaudeClient() as client:
        ...     batch = await client.batches.create(
        ...         [BatchRequest(custom_id="req-1", params=request)]
        ...     )
        ...     batch = await client.batches.wait_for_completion(batch.id)
        ...     async for line in client.batches.results(batch.id):
        ...         print(line.custom_id, line.result.type)
    """

    def __init__(self, client: "ClaudeClient"):
        self._client = client

    @property
    def url(self) -> str:
        return self._client.batches_url

    async def create(self, requests: List[BatchRequest]) -> MessageBatch:
        """Submit a new batch of Messages requests."""
        body = CreateBatchRequest(requests=requests)
        logger.debug(f"Creating batch with {len(body.requests)} requests")

        batch = await self._get_batch(
            "POST", self.url, data=body.model_dump_json(exclude_none=True)
        )
        logger.info(f"Created batch {batch.id} ({len(body.requests)} requests)")
        return batch

    async def retrieve(self, batch_id: str) -> MessageBatch:
        logger.debug(f"Retrieving batch: {batch_id}")
        return await self._get_batch("GET", f"{self.url}/{batch_id}")

    async def list(
        self,
        limit: Optional[int] = None,
        before_id: Optional[str] = None,
        after_id: Optional[str] = None,
    ) -> BatchesListResponse:
        """List batches, most recent first."""
        params = {
            key: value
            for key, value in (
                ("limit", limit),
                ("before_id", before_id),
                ("after_id", after_id),
            )
            if value is not None
        }
        logger.debug(f"Listing batches: {params}")

        response = await self._client._request("GET", self.url, params=params or None)
        try:
            data = await response.json()
        finally:
            await response.aclose()
        return BatchesListResponse.model_validate(data)

    async def cancel(self, batch_id: str) -> MessageBatch:
        logger.info(f"Canceling batch: {batch_id}")
        return await self._get_batch("POST", f"{self.url}/{batch_id}/cancel")

    async def wait_for_completion(
        self, batch_id: str, poll_interval: Optional[float] = None
    ) -> MessageBatch:
        """
        Poll a batch until its processing status is ``ended``.

        Args:
            batch_id: Batch to wait for
            poll_interval: Seconds between checks, defaults to settings.batch_poll_interval

        Returns:
            The ended batch. Wrap the call in asyncio.timeout() to bound the wait.
        """
        interval = (
            poll_interval if poll_interval is not None else settings.batch_poll_interval
        )
        logger.info(f"Waiting for batch {batch_id} to complete")

        while True:
            batch = await self.retrieve(batch_id)
            if batch.ended:
                logger.info(
                    f"Batch {batch_id} ended: {batch.request_counts.succeeded} succeeded, "
                    f"{batch.request_counts.errored} errored"
                )
                return batch

            logger.debug(
                f"Batch {batch_id} still processing (status: {batch.processing_status})"
            )
            await asyncio.sleep(interval)

    async def results(self, batch_id: str) -> AsyncIterator[BatchResultLine]:
        """
        Stream the results of an ended batch, one per JSONL line.

        Raises:
            BatchNotReadyError: The batch has no results_url yet
            StreamTransportError: The results download failed midway
            StreamDecodeError: A line is not a valid result
        """
        batch = await self.retrieve(batch_id)
        if not batch.results_url:
            raise BatchNotReadyError(batch_id, batch.processing_status)

        logger.debug(f"Streaming results from: {batch.results_url}")
        response = await self._client._request(
            "GET",
            batch.results_url,
            stream=True,
            headers={"accept": "application/binary"},
        )

        buffer = b""
        count = 0
        try:
            chunks = response.aiter_bytes().__aiter__()
            while True:
                try:
                    chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    break
                except (httpx.HTTPError, OSError) as e:
                    logger.error(f"Batch results download failed: {type(e).__name__}: {e}")
                    raise StreamTransportError(e) from e

                buffer += chunk
                *lines, buffer = buffer.split(b"\n")
                for line in lines:
                    result = self._parse_line(line)
                    if result is not None:
                        count += 1
                        yield result

            result = self._parse_line(buffer)
            if result is not None:
                count += 1
                yield result
        finally:
            await response.aclose()

        logger.debug(f"Read {count} results for batch {batch_id}")

    @staticmethod
    def _parse_line(line: bytes) -> Optional[BatchResultLine]:
        try:
            text = line.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise StreamTransportError(e) from e
        if not text:
            return None

        try:
            return BatchResultLine.model_validate_json(text)
        except ValidationError as e:
            raise StreamDecodeError("batch_result", text, str(e)) from e

    async def _get_batch(
        self, method: str, url: str, data: Optional[str] = None
    ) -> MessageBatch:
        response = await self._client._request(method, url, data=data)
        try:
            body = await response.json()
        finally:
            await response.aclose()
        return MessageBatch.model_validate(body)
