import json
from time import monotonic
from typing import Dict, List, Optional

from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

from claude_sdk.core.batches import BatchClient
from claude_sdk.core.config import settings
from claude_sdk.core.exceptions import (
    ClaudeApiError,
    ClaudeAuthenticationError,
    ClaudeHttpError,
    ClaudeRateLimitedError,
    ClaudeServerError,
    InvalidRequestError,
    NoAPIKeyProvidedError,
)
from claude_sdk.core.http_client import AsyncSession, Response, create_session
from claude_sdk.models.claude import MessagesAPIRequest, MessagesResponse
from claude_sdk.services.event_processing.event_parser import EventParser, MessageStream
from claude_sdk.utils.retry import is_retryable_error, log_before_sleep, wait_retry_after


class ClaudeClient:
    """Client for the Anthropic Messages API.

    Example:
        >>> async with ClaudeClient() as client:
        ...     request = MessagesAPIRequest(
        ...         model="claude-sonnet-4-5-20250929",
        ...         max_tokens=1024,
        ...         messages=[InputMessage.user("Tell me a story")],
        ...     )
        ...     async with await client.stream_message(request) as stream:
        ...         async for text in stream.text_stream():
        ...             print(text, end="")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        beta_features: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        session: Optional[AsyncSession] = None,
    ):
        self.api_key = api_key or settings.api_key
        if not self.api_key:
            raise NoAPIKeyProvidedError()

        self.messages_url = (
            base_url.rstrip("/") + "/v1/messages" if base_url else settings.messages_url
        )
        self.batches_url = self.messages_url + "/batches"
        self.api_version = api_version or settings.api_version
        self.beta_features = (
            beta_features if beta_features is not None else settings.beta_features
        )
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_retries = (
            max_retries if max_retries is not None else settings.request_retries
        )
        self.session = session
        self._owns_session = session is None
        self.batches = BatchClient(self)

    async def initialize(self):
        """Initialize the client session."""
        if not self.session:
            self.session = create_session(
                timeout=self.timeout,
                proxy=settings.proxy_url,
            )

    async def close(self):
        """Close the session if this client created it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "ClaudeClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_headers(self, stream: bool) -> Dict[str, str]:
        """Build request headers."""
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
            "accept": "text/event-stream" if stream else "application/json",
        }
        if self.beta_features:
            headers["anthropic-beta"] = ",".join(self.beta_features)
        return headers

    async def send_message(self, request: MessagesAPIRequest) -> MessagesResponse:
        """Send a request and wait for the complete message."""
        start = monotonic()
        request = request.model_copy(update={"stream": False})

        response = await self._post(request, stream=False)
        try:
            data = await response.json()
        finally:
            await response.aclose()

        message = MessagesResponse.model_validate(data)

        logger.info(
            f"Claude message {message.id}: model={message.model}, "
            f"stop_reason={message.stop_reason}, latency={1000 * (monotonic() - start):.0f}ms"
        )
        return message

    async def stream_message(
        self, request: MessagesAPIRequest, include_pings: bool = False
    ) -> MessageStream:
        """
        Send a streaming request and return the event stream once headers arrive.

        Retries apply only until the response starts; a stream that fails
        midway has to be requested again.
        """
        request = request.model_copy(update={"stream": True})

        response = await self._post(request, stream=True)
        logger.info(f"Streaming response started for model={request.model}")

        return MessageStream(
            response.aiter_bytes(),
            on_close=response.aclose,
            parser=EventParser(include_pings=include_pings),
        )

    async def _post(self, request: MessagesAPIRequest, stream: bool) -> Response:
        """POST to the Messages API."""
        logger.debug(
            f"Calling Claude API: model={request.model}, "
            f"messages={len(request.messages)}, stream={stream}"
        )
        return await self._request(
            "POST",
            self.messages_url,
            data=request.model_dump_json(exclude_none=True),
            stream=stream,
        )

    async def _request(
        self,
        method: str,
        url: str,
        data: Optional[str] = None,
        stream: bool = False,
        headers: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> Response:
        """Send a request with retries for retryable failures."""
        if not self.session:
            await self.initialize()

        headers = {**self._build_headers(stream), **(headers or {})}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(self.max_retries, 1)),
            wait=wait_retry_after(
                initial=settings.retry_initial_backoff,
                max=settings.retry_max_backoff,
                multiplier=settings.retry_backoff_multiplier,
            ),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=log_before_sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                response = await self.session.request(
                    method,
                    url,
                    headers=headers,
                    data=data,
                    stream=stream,
                    **kwargs,
                )
                if response.status_code >= 300:
                    try:
                        error = await self._build_error(response, url)
                    finally:
                        await response.aclose()
                    raise error

        return response

    async def _build_error(self, response: Response, url: str) -> ClaudeHttpError:
        """Map a failed response to the matching ClaudeHttpError."""
        status = response.status_code
        body = await response.text()

        error_type = None
        error_message = body or f"HTTP {status} error with empty response"
        structured = False
        try:
            error_body = json.loads(body).get("error", {})
            if isinstance(error_body, dict) and "message" in error_body:
                error_type = error_body.get("type")
                error_message = error_body["message"]
                structured = True
        except (json.JSONDecodeError, AttributeError):
            pass

        logger.error(f"Claude API error: {status} - {error_type}: {error_message}")

        if status == 429:
            return ClaudeRateLimitedError(
                url=url,
                error_message=error_message,
                retry_after=self._parse_retry_after(response),
            )

        if status in (401, 403):
            return ClaudeAuthenticationError(
                url=url, status_code=status, error_message=error_message
            )

        if status == 400:
            if structured:
                return ClaudeApiError(
                    url=url,
                    status_code=status,
                    error_message=error_message,
                    error_type=error_type,
                )
            return InvalidRequestError(url=url, error_message=body)

        if status >= 500:
            return ClaudeServerError(
                url=url,
                status_code=status,
                error_message=error_message,
                error_type=error_type,
            )

        return ClaudeApiError(
            url=url,
            status_code=status,
            error_message=error_message,
            error_type=error_type,
        )

    @staticmethod
    def _parse_retry_after(response: Response) -> Optional[float]:
        retry_after = response.headers.get("retry-after")
        if not retry_after:
            return None
        try:
            return float(retry_after)
        except ValueError:
            logger.debug(f"Ignoring non-numeric retry-after header: {retry_after}")
            return None
