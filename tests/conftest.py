import json

import httpx
import pytest
from fastapi.testclient import TestClient

from nimbridge import BackendClient, ProxySettings, create_app

BACKEND_URL = "http://nim.test/v1"
DONE_EVENT_TEXT = "data: [DONE]\n\n"

# Mock response payloads
MOCK_COMPLETION_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1677652288,
    "model": "meta/llama-3.1-8b-instruct",
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "Hello there, how may I assist you today?",
            },
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 9, "completion_tokens": 12, "total_tokens": 21},
}

MOCK_COMPLETION_WITH_REASONING = {
    "id": "chatcmpl-789",
    "object": "chat.completion",
    "created": 1677652288,
    "model": "deepseek-ai/deepseek-v3.1",
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "The answer is 4.",
                "reasoning_content": "2+2 is a basic arithmetic operation",
            },
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 8, "completion_tokens": 20, "total_tokens": 28},
}


def stream_event(delta, finish_reason=None):
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": "deepseek-ai/deepseek-v3.1",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


MOCK_STREAMING_EVENTS = [
    stream_event({"role": "assistant", "content": ""}),
    stream_event({"reasoning_content": "Let me"}),
    stream_event({"reasoning_content": " think."}),
    stream_event({"content": "Hello"}),
    stream_event({"content": " world"}),
    stream_event({}, finish_reason="stop"),
]


def sse_body(events, done=True) -> bytes:
    body = b"".join(f"data: {json.dumps(event)}\n\n".encode() for event in events)
    if done:
        body += b"data: [DONE]\n\n"
    return body


def parse_sse(text):
    """Split an event-stream body into its data payloads."""
    payloads = []
    for block in text.split("\n\n"):
        block = block.strip()
        if block.startswith("data: "):
            payloads.append(block[len("data: "):])
    return payloads


class ChunkStream(httpx.AsyncByteStream):
    """Response body that hands out the given byte chunks one by one."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.served = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.served += 1
            yield chunk

    async def aclose(self):
        self.closed = True


class MockBackend:
    """
    Stands in for the NIM API behind an httpx.MockTransport.
    Records every request and answers with whatever was configured last.
    """

    def __init__(self):
        self.requests = []
        self.stream = None
        self._respond = lambda request: httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)

    def respond_json(self, body, status_code=200):
        self._respond = lambda request: httpx.Response(status_code, json=body)

    def respond_text(self, text, status_code):
        self._respond = lambda request: httpx.Response(status_code, text=text)

    def respond_stream(self, chunks):
        self.stream = ChunkStream(chunks)
        self._respond = lambda request: httpx.Response(
            200, headers={"content-type": "text/event-stream"}, stream=self.stream
        )

    def raise_error(self, exc_type, message="mock failure"):
        def _raise(request):
            raise exc_type(message, request=request)

        self._respond = _raise


def make_client(backend: MockBackend, **overrides) -> TestClient:
    values = {"base_url": BACKEND_URL, "api_key": "test-key"}
    values.update(overrides)
    settings = ProxySettings(**values)
    client = BackendClient(settings, transport=httpx.MockTransport(backend))
    return TestClient(create_app(settings, client))


# Shared fixtures
@pytest.fixture
def mock_backend():
    return MockBackend()


@pytest.fixture
def test_client(mock_backend):
    """Reasoning hidden, thinking mode off"""
    return make_client(mock_backend)


@pytest.fixture
def test_client_show_reasoning(mock_backend):
    return make_client(mock_backend, show_reasoning=True)


@pytest.fixture
def test_client_thinking_mode(mock_backend):
    return make_client(mock_backend, thinking_mode=True)


@pytest.fixture
def test_client_no_api_key(mock_backend):
    return make_client(mock_backend, api_key=None)
