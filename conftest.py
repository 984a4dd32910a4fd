"""Shared test fixtures: SSE payload builders, fake HTTP streams, config files."""

import asyncio
import copy
import json

import httpx
import pytest
import yaml

from bijlitrack.config import Configuration
from bijlitrack.llm.client import AssistantClient

ASSISTANT_CONFIG = {
    "base_url": "http://assistant.test",
    "endpoint_path": "/ai-assistant",
}

BASE_CONFIG = {
    "assistant": {
        "base_url": "http://assistant.test",
        "endpoint_path": "/ai-assistant",
        "http_client": {
            "connect_timeout": 5.0,
            "read_timeout": 30.0,
            "write_timeout": 5.0,
            "pool_timeout": 5.0,
        },
        "streaming": {"max_frame_retries": 3},
    },
    "chat": {
        "default_mode": "chat",
        "default_target_language": "ur",
        "ui_language": "en",
    },
    "relay": {
        "host": "127.0.0.1",
        "port": 8787,
        "gateway": {
            "base_url": "http://gateway.test/v1",
            "model": "google/gemini-2.5-flash",
            "timeout": 30.0,
        },
    },
    "logging": {"level": "DEBUG"},
}


def delta_line(content: str) -> bytes:
    """One ``data:`` frame carrying a content delta."""
    payload = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n".encode()


DONE_LINE = b"data: [DONE]\n"


@pytest.fixture
def sse_body():
    """Build a complete event-stream body from delta strings."""
    def build(*contents: str, done: bool = True) -> bytes:
        body = b"".join(delta_line(c) for c in contents)
        return body + DONE_LINE if done else body
    return build


@pytest.fixture
def stream_response():
    """Build a streamed httpx response that yields ``chunks`` one by one."""
    def build(
        chunks,
        status_code: int = 200,
        content_type: str = "text/event-stream",
        error: Exception | None = None,
        hang: bool = False,
    ) -> httpx.Response:
        async def body():
            for chunk in chunks:
                yield chunk
            if error is not None:
                raise error
            if hang:
                await asyncio.Event().wait()

        return httpx.Response(
            status_code,
            headers={"content-type": content_type},
            content=body(),
        )
    return build


@pytest.fixture
def make_client():
    """Create an AssistantClient backed by an httpx MockTransport handler."""
    def build(handler, **kwargs) -> AssistantClient:
        return AssistantClient(
            ASSISTANT_CONFIG,
            "test-key",
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
    return build


@pytest.fixture
def config_dict():
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def write_config(tmp_path):
    """Write a config dict to a YAML file and return its path."""
    def write(data) -> str:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
        return str(path)
    return write


@pytest.fixture
def configuration(config_dict, write_config, monkeypatch):
    monkeypatch.delenv("BIJLITRACK_SUPABASE_URL", raising=False)
    monkeypatch.setenv("BIJLITRACK_PUBLISHABLE_KEY", "publishable-test-key")
    monkeypatch.setenv("AI_GATEWAY_API_KEY", "gateway-test-key")
    return Configuration(write_config(config_dict))
