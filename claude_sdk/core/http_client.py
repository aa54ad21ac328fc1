"""HTTP client abstraction layer over httpx."""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, AsyncIterator

import httpx
from loguru import logger

from claude_sdk.core.config import settings
from claude_sdk.core.exceptions import ClaudeConnectionError


class Response(ABC):
    """Abstract response class."""

    @property
    @abstractmethod
    def status_code(self) -> int:
        """Get response status code."""
        pass

    @property
    @abstractmethod
    def headers(self) -> Dict[str, str]:
        """Get response headers."""
        pass

    @abstractmethod
    async def json(self) -> Any:
        """Parse response as JSON."""
        pass

    @abstractmethod
    async def text(self) -> str:
        """Read the whole body as text."""
        pass

    @abstractmethod
    def aiter_bytes(self, chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
        """Iterate over response bytes."""
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection."""
        pass


class HttpxResponse(Response):
    """httpx response wrapper."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> Dict[str, str]:
        return self._response.headers

    async def json(self) -> Any:
        await self._response.aread()
        return self._response.json()

    async def text(self) -> str:
        await self._response.aread()
        return self._response.text

    async def aiter_bytes(
        self, chunk_size: Optional[int] = None
    ) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes(chunk_size):
            yield chunk

    async def aclose(self) -> None:
        await self._response.aclose()


class AsyncSession(ABC):
    """Abstract async session class."""

    @abstractmethod
    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        stream: bool = False,
        **kwargs,
    ) -> Response:
        """Make an HTTP request."""
        pass

    @abstractmethod
    async def close(self):
        """Close the session."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class HttpxAsyncSession(AsyncSession):
    """httpx async session wrapper."""

    def __init__(
        self,
        timeout: float = settings.request_timeout,
        proxy: Optional[str] = settings.proxy_url,
        follow_redirects: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout,
            proxy=proxy,
            follow_redirects=follow_redirects,
            transport=transport,
        )

    async def stream(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        **kwargs,
    ) -> httpx.Response:
        """
        Send a request and return as soon as the headers arrive, leaving the
        body unread. The caller must close the returned response.
        """
        request = self._client.build_request(
            method=method,
            url=url,
            data=data,
            json=json,
            headers=headers,
            **kwargs,
        )
        return await self._client.send(request=request, stream=True)

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        stream: bool = False,
        **kwargs,
    ) -> Response:
        logger.debug(f"Making {method} request to {url}")

        try:
            if stream:
                response = await self.stream(
                    method=method,
                    url=url,
                    headers=headers,
                    json=json,
                    data=data,
                    **kwargs,
                )
            else:
                response = await self._client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    json=json,
                    data=data,
                    **kwargs,
                )
        except httpx.RequestError as e:
            logger.warning(f"{method} {url} failed: {type(e).__name__}: {e}")
            raise ClaudeConnectionError(url=url, cause=e) from e

        return HttpxResponse(response)

    async def close(self):
        await self._client.aclose()


def create_session(
    timeout: float = settings.request_timeout,
    proxy: Optional[str] = settings.proxy_url,
    follow_redirects: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncSession:
    """Create an async session backed by httpx."""
    logger.debug("Creating httpx session")
    return HttpxAsyncSession(
        timeout=timeout,
        proxy=proxy,
        follow_redirects=follow_redirects,
        transport=transport,
    )
