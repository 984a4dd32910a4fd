"""
Relay in front of the LLM gateway.

Accepts the assistant request, prepends the system prompt for its type,
forwards it to the gateway's chat-completions API with ``stream: true`` and
pipes the gateway's event stream back to the caller byte for byte.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.background import BackgroundTask

from bijlitrack import __version__
from bijlitrack.config import Configuration
from bijlitrack.llm.exceptions import (
    CREDITS_EXHAUSTED_MESSAGE,
    HTTP_PAYMENT_REQUIRED,
    HTTP_TOO_MANY_REQUESTS,
    RATE_LIMIT_MESSAGE,
)
from bijlitrack.llm.streaming.models import EVENT_STREAM_MEDIA_TYPE
from bijlitrack.logging_utils import AssistantErrorHandler, log_operation

from .prompts import build_system_prompt

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


class RelayMessage(BaseModel):
    role: str
    content: str


class RelayRequest(BaseModel):
    """Body accepted by the relay; ``message`` is shorthand for one user turn.

    ``type`` and ``targetLanguage`` are free strings: anything other than
    ``translate`` is a chat, and anything other than ``ur`` is English.
    """
    model_config = ConfigDict(populate_by_name=True)

    messages: list[RelayMessage] | None = None
    message: str | None = None
    type: str | None = "chat"
    target_language: str | None = Field(default=None, alias="targetLanguage")

    def conversation(self) -> list[dict[str, str]]:
        if self.messages is not None:
            return [m.model_dump() for m in self.messages]
        if self.message:
            return [{"role": "user", "content": self.message}]
        return []


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@log_operation("relay_forward")
async def forward_to_gateway(
    client: httpx.AsyncClient,
    payload: dict[str, Any],
    api_key: str,
) -> httpx.Response:
    """Open the streaming chat-completions request; caller must close it."""
    request = client.build_request(
        "POST",
        "/chat/completions",
        json=payload,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
    )
    return await client.send(request, stream=True)


def create_app(
    configuration: Configuration,
    upstream_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        configuration: Loaded configuration (relay section and gateway key)
        upstream_client: HTTP client for the gateway; created from the relay
            configuration when omitted and closed on shutdown.
    """
    relay_config = configuration.get_relay_config()
    gateway_config = relay_config["gateway"]

    owns_client = upstream_client is None
    client = upstream_client or httpx.AsyncClient(
        base_url=gateway_config["base_url"],
        timeout=gateway_config["timeout"],
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.aclose()

    app = FastAPI(
        title="BijliTrack Assistant Relay",
        description="Streams chat and translation replies from the LLM gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.upstream = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(f"Rejected relay request: {exc.errors()}")
        return error_response("Invalid request body", 400)

    @app.post("/ai-assistant")
    async def ai_assistant(body: RelayRequest):
        """Forward a chat or translate request and stream the reply back."""
        try:
            api_key = configuration.gateway_api_key
            messages = [
                {
                    "role": "system",
                    "content": build_system_prompt(body.type, body.target_language),
                },
                *body.conversation(),
            ]
            payload = {
                "model": gateway_config["model"],
                "messages": messages,
                "stream": True,
            }

            upstream = await forward_to_gateway(app.state.upstream, payload, api_key)

            if not upstream.is_success:
                error_text = (await upstream.aread()).decode(errors="replace")
                await upstream.aclose()
                logger.error(
                    f"AI gateway error: {upstream.status_code} {error_text[:500]}"
                )
                if upstream.status_code == HTTP_TOO_MANY_REQUESTS:
                    return error_response(RATE_LIMIT_MESSAGE, HTTP_TOO_MANY_REQUESTS)
                if upstream.status_code == HTTP_PAYMENT_REQUIRED:
                    return error_response(
                        CREDITS_EXHAUSTED_MESSAGE, HTTP_PAYMENT_REQUIRED
                    )
                return error_response(
                    f"AI gateway error: {upstream.status_code}", 500
                )

            return StreamingResponse(
                upstream.aiter_raw(),
                media_type=EVENT_STREAM_MEDIA_TYPE,
                background=BackgroundTask(upstream.aclose),
            )

        except Exception as e:
            AssistantErrorHandler.log_error(e, "ai_assistant", {"type": body.type})
            return error_response(str(e) or "Unknown error", 500)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app
