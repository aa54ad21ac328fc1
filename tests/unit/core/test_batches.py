"""Unit tests for the Message Batches client."""

import asyncio
import json

import httpx
import pytest

from claude_sdk.core.client import ClaudeClient
from claude_sdk.core.config import settings
from claude_sdk.core.exceptions import (
    BatchNotReadyError,
    ClaudeApiError,
    StreamDecodeError,
)
from claude_sdk.core.http_client import create_session
from claude_sdk.models.batches import BatchRequest, ErroredResult, SucceededResult
from claude_sdk.models.claude import InputMessage, MessagesAPIRequest

BATCHES_URL = "https://api.anthropic.com/v1/messages/batches"
RESULTS_URL = "https://api.anthropic.com/v1/messages/batches/msgbatch_01/results"


def batch_body(status: str = "in_progress", **overrides) -> dict:
    body = {
        "id": "msgbatch_01",
        "type": "message_batch",
        "processing_status": status,
        "request_counts": {
            "processing": 2 if status == "in_progress" else 0,
            "succeeded": 0 if status == "in_progress" else 1,
            "errored": 0 if status == "in_progress" else 1,
            "canceled": 0,
            "expired": 0,
        },
        "created_at": "2025-10-01T12:00:00Z",
        "expires_at": "2025-10-02T12:00:00Z",
        "ended_at": None,
        "cancel_initiated_at": None,
        "results_url": RESULTS_URL if status == "ended" else None,
    }
    body.update(overrides)
    return body


RESULT_LINES = [
    {
        "custom_id": "req-1",
        "result": {
            "type": "succeeded",
            "message": {
                "id": "msg_01",
                "type": "message",
                "role": "assistant",
                "content": [{"type": "text", "text": "Bonjour"}],
                "model": "claude-sonnet-4-5-20250929",
                "stop_reason": "end_turn",
                "usage": {"input_tokens": 4, "output_tokens": 2},
            },
        },
    },
    {
        "custom_id": "req-2",
        "result": {
            "type": "errored",
            "error": {
                "type": "error",
                "error": {"type": "invalid_request_error", "message": "max_tokens: too large"},
            },
        },
    },
]


class BatchApi:
    """MockTransport handler serving scripted responses per method and path."""

    def __init__(self, routes: dict):
        self.routes = {key: list(value) for key, value in routes.items()}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes[(request.method, request.url.path)]
        # The last scripted response repeats
        return responses.pop(0) if len(responses) > 1 else responses[0]


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in fixed-size chunks that ignore line boundaries."""

    def __init__(self, body: bytes, size: int):
        self.body = body
        self.size = size

    async def __aiter__(self):
        for start in range(0, len(self.body), self.size):
            yield self.body[start : start + self.size]


def make_client(api: BatchApi, **kwargs) -> ClaudeClient:
    session = create_session(timeout=5.0, proxy=None, transport=httpx.MockTransport(api))
    return ClaudeClient(api_key="sk-ant-test", session=session, **kwargs)


def batch_request(custom_id: str) -> BatchRequest:
    return BatchRequest(
        custom_id=custom_id,
        params=MessagesAPIRequest(
            model="claude-sonnet-4-5-20250929",
            max_tokens=64,
            messages=[InputMessage.user("Translate 'hello' to French")],
        ),
    )


def jsonl(lines) -> bytes:
    return "".join(json.dumps(line) + "\n" for line in lines).encode("utf-8")


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(settings, "retry_initial_backoff", 0.0)


class TestBatchClient:
    @pytest.mark.asyncio
    async def test_create(self) -> None:
        api = BatchApi(
            {("POST", "/v1/messages/batches"): [httpx.Response(200, json=batch_body())]}
        )
        client = make_client(api)

        batch = await client.batches.create([batch_request("req-1"), batch_request("req-2")])

        assert batch.id == "msgbatch_01"
        assert batch.processing_status == "in_progress"
        assert batch.request_counts.processing == 2

        sent = api.requests[0]
        assert str(sent.url) == BATCHES_URL
        assert sent.headers["x-api-key"] == "sk-ant-test"
        assert sent.headers["anthropic-version"] == "2023-06-01"
        payload = json.loads(sent.content)
        assert [item["custom_id"] for item in payload["requests"]] == ["req-1", "req-2"]
        assert payload["requests"][0]["params"]["max_tokens"] == 64

    @pytest.mark.asyncio
    async def test_create_requires_requests(self) -> None:
        client = make_client(BatchApi({}))

        with pytest.raises(ValueError):
            await client.batches.create([])

    @pytest.mark.asyncio
    async def test_retrieve_uses_base_url(self) -> None:
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_01"): [
                    httpx.Response(200, json=batch_body("ended"))
                ]
            }
        )
        client = make_client(api, base_url="https://proxy.example.com/")

        batch = await client.batches.retrieve("msgbatch_01")

        assert batch.ended
        assert batch.results_url == RESULTS_URL
        assert str(api.requests[0].url) == (
            "https://proxy.example.com/v1/messages/batches/msgbatch_01"
        )

    @pytest.mark.asyncio
    async def test_list(self) -> None:
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches"): [
                    httpx.Response(
                        200,
                        json={
                            "data": [batch_body(), batch_body("ended", id="msgbatch_00")],
                            "first_id": "msgbatch_01",
                            "last_id": "msgbatch_00",
                            "has_more": True,
                        },
                    )
                ]
            }
        )
        client = make_client(api)

        page = await client.batches.list(limit=2, after_id="msgbatch_02")

        assert [batch.id for batch in page.data] == ["msgbatch_01", "msgbatch_00"]
        assert page.has_more is True
        assert api.requests[0].url.params["limit"] == "2"
        assert api.requests[0].url.params["after_id"] == "msgbatch_02"
        assert "before_id" not in api.requests[0].url.params

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        api = BatchApi(
            {
                ("POST", "/v1/messages/batches/msgbatch_01/cancel"): [
                    httpx.Response(
                        200,
                        json=batch_body(
                            "canceling", cancel_initiated_at="2025-10-01T12:05:00Z"
                        ),
                    )
                ]
            }
        )
        client = make_client(api)

        batch = await client.batches.cancel("msgbatch_01")

        assert batch.processing_status == "canceling"
        assert batch.cancel_initiated_at == "2025-10-01T12:05:00Z"
        assert api.requests[0].method == "POST"

    @pytest.mark.asyncio
    async def test_missing_batch(self) -> None:
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_missing"): [
                    httpx.Response(
                        404,
                        json={
                            "type": "error",
                            "error": {"type": "not_found_error", "message": "Batch not found"},
                        },
                    )
                ]
            }
        )
        client = make_client(api, max_retries=3)

        with pytest.raises(ClaudeApiError) as exc_info:
            await client.batches.retrieve("msgbatch_missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.context["url"] == f"{BATCHES_URL}/msgbatch_missing"
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self) -> None:
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_01"): [
                    httpx.Response(
                        529,
                        json={
                            "type": "error",
                            "error": {"type": "overloaded_error", "message": "Overloaded"},
                        },
                    ),
                    httpx.Response(200, json=batch_body()),
                ]
            }
        )
        client = make_client(api, max_retries=2)

        batch = await client.batches.retrieve("msgbatch_01")

        assert batch.id == "msgbatch_01"
        assert len(api.requests) == 2

    @pytest.mark.asyncio
    async def test_wait_for_completion(self, monkeypatch) -> None:
        sleeps = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        monkeypatch.setattr(settings, "batch_poll_interval", 30.0)
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_01"): [
                    httpx.Response(200, json=batch_body()),
                    httpx.Response(200, json=batch_body("canceling")),
                    httpx.Response(200, json=batch_body("ended")),
                ]
            }
        )
        client = make_client(api)

        batch = await client.batches.wait_for_completion("msgbatch_01")

        assert batch.ended
        assert batch.request_counts.succeeded == 1
        assert len(api.requests) == 3
        assert sleeps == [30.0, 30.0]

    @pytest.mark.asyncio
    async def test_results(self) -> None:
        body = jsonl(RESULT_LINES)
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_01"): [
                    httpx.Response(200, json=batch_body("ended"))
                ],
                # No trailing newline on the last line
                ("GET", "/v1/messages/batches/msgbatch_01/results"): [
                    httpx.Response(200, stream=ChunkedStream(body.rstrip(b"\n"), 7))
                ],
            }
        )
        client = make_client(api)

        lines = [line async for line in client.batches.results("msgbatch_01")]

        assert [line.custom_id for line in lines] == ["req-1", "req-2"]
        assert isinstance(lines[0].result, SucceededResult)
        assert lines[0].result.message.text == "Bonjour"
        assert isinstance(lines[1].result, ErroredResult)
        assert lines[1].result.error.kind == "invalid_request_error"
        assert api.requests[1].headers["x-api-key"] == "sk-ant-test"

    @pytest.mark.asyncio
    async def test_results_before_batch_ended(self) -> None:
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_01"): [
                    httpx.Response(200, json=batch_body())
                ]
            }
        )
        client = make_client(api)

        with pytest.raises(BatchNotReadyError) as exc_info:
            async for _ in client.batches.results("msgbatch_01"):
                pass

        assert exc_info.value.context["processing_status"] == "in_progress"
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_results_invalid_line(self) -> None:
        body = jsonl(RESULT_LINES[:1]) + b"\n{not json}\n"
        api = BatchApi(
            {
                ("GET", "/v1/messages/batches/msgbatch_01"): [
                    httpx.Response(200, json=batch_body("ended"))
                ],
                ("GET", "/v1/messages/batches/msgbatch_01/results"): [
                    httpx.Response(200, content=body)
                ],
            }
        )
        client = make_client(api)
        seen = []

        with pytest.raises(StreamDecodeError) as exc_info:
            async for line in client.batches.results("msgbatch_01"):
                seen.append(line.custom_id)

        assert seen == ["req-1"]
        assert exc_info.value.data == "{not json}"
