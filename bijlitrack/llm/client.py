"""
HTTP client for the assistant endpoint.

Posts the conversation to the relay and turns the streamed response into
content chunks, mapping every HTTP and transport failure onto the assistant
error hierarchy.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Any

import httpx

from .exceptions import (
    CREDITS_EXHAUSTED_MESSAGE,
    GENERIC_GATEWAY_MESSAGE,
    HTTP_PAYMENT_REQUIRED,
    HTTP_TOO_MANY_REQUESTS,
    RATE_LIMIT_MESSAGE,
    AssistantConnectionError,
    AssistantError,
    CreditsExhaustedError,
    GatewayError,
    MissingStreamError,
    RateLimitError,
    StreamingError,
)
from .models import AssistantRequest
from .streaming.models import EVENT_STREAM_MEDIA_TYPE, StreamChunk
from .streaming.parser import (
    DEFAULT_MAX_FRAME_RETRIES,
    DeltaAccumulator,
    StreamingParser,
)

if TYPE_CHECKING:                                        # pragma: no cover
    from bijlitrack.config import Configuration

logger = logging.getLogger(__name__)

# No Content / Reset Content never carry a body
NO_BODY_STATUS_CODES = (204, 205)


class AssistantClient:
    """Streaming HTTP client for chat and translate requests."""

    def __init__(
        self,
        config: dict[str, Any],
        api_key: str,
        *,
        max_frame_retries: int = DEFAULT_MAX_FRAME_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # Validate required configuration parameters
        required_keys = ["base_url", "endpoint_path"]
        for key in required_keys:
            if key not in config:
                raise ValueError(
                    f"Required assistant configuration parameter '{key}' not found."
                )

        self.config: dict[str, Any] = config
        self.endpoint_path: str = config["endpoint_path"]
        self.streaming_parser = StreamingParser(max_frame_retries)

        http_config = config.get("http_client", {})
        timeout = httpx.Timeout(
            connect=http_config.get("connect_timeout", 10.0),
            read=http_config.get("read_timeout", 60.0),
            write=http_config.get("write_timeout", 10.0),
            pool=http_config.get("pool_timeout", 10.0),
        )
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=config["base_url"],
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_configuration(
        cls,
        configuration: Configuration,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AssistantClient:
        """Build a client from the YAML/env configuration."""
        config = {
            **configuration.get_assistant_config(),
            "http_client": configuration.get_http_client_config(),
        }
        streaming_config = configuration.get_streaming_config()
        return cls(
            config,
            configuration.publishable_key,
            max_frame_retries=streaming_config["max_frame_retries"],
            transport=transport,
        )

    async def stream_reply(
        self, request: AssistantRequest
    ) -> AsyncGenerator[StreamChunk]:
        """
        Post ``request`` and yield the reply as it streams in.

        Raises:
            GatewayError: Non-2xx response (RateLimitError for 429,
                CreditsExhaustedError for 402).
            MissingStreamError: Successful response that has no body.
            AssistantConnectionError: The request could not be sent.
            StreamingError: The connection failed mid-stream.
        """
        accumulator = DeltaAccumulator()

        try:
            async with self.client.stream(
                "POST", self.endpoint_path, json=request.to_json_body()
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise self._gateway_error(response)

                if response.status_code in NO_BODY_STATUS_CODES:
                    raise MissingStreamError(
                        "No reader available: response "
                        f"{response.status_code} has no body",
                        status_code=response.status_code,
                    )

                content_type = response.headers.get("content-type", "")
                if EVENT_STREAM_MEDIA_TYPE not in content_type.lower():
                    logger.warning(
                        f"Unexpected content-type '{content_type}', "
                        "decoding body as an event stream"
                    )

                try:
                    async for frame in self.streaming_parser.parse_sse_stream(
                        response.aiter_bytes()
                    ):
                        chunk = accumulator.process_frame(frame)
                        if chunk is not None:
                            yield chunk
                except httpx.HTTPError as e:
                    logger.error(f"HTTP error during streaming: {e}")
                    raise StreamingError(
                        f"Connection lost while receiving the reply: {e!s}"
                    ) from e

                logger.debug(
                    f"Stream complete: {self.streaming_parser.get_stats()}"
                )

        except AssistantError:
            raise
        except httpx.HTTPError as e:
            logger.error(f"HTTP error: {e}")
            raise AssistantConnectionError(
                f"Could not reach the assistant: {e!s}"
            ) from e

    def _gateway_error(self, response: httpx.Response) -> GatewayError:
        """Build the error for a non-2xx response, preferring its JSON message."""
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None

        message = None
        response_data: dict[str, Any] = {}
        if isinstance(data, dict):
            response_data = data
            error = data.get("error")
            if isinstance(error, dict):
                error = error.get("message")
            if isinstance(error, str) and error:
                message = error

        if status == HTTP_TOO_MANY_REQUESTS:
            return RateLimitError(
                message or RATE_LIMIT_MESSAGE,
                retry_after=_parse_retry_after(response),
                response_data=response_data,
            )
        if status == HTTP_PAYMENT_REQUIRED:
            return CreditsExhaustedError(
                message or CREDITS_EXHAUSTED_MESSAGE,
                response_data=response_data,
            )
        return GatewayError(
            message or GENERIC_GATEWAY_MESSAGE,
            status_code=status,
            response_data=response_data,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> AssistantClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
