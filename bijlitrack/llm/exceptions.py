"""
Error handling for assistant requests.

Every terminal failure of a chat request is one of these exceptions. Each
carries a ``user_message`` that the chat session shows as the assistant's
reply, plus the HTTP context that produced it.
"""

from __future__ import annotations

from typing import Any

DEFAULT_USER_MESSAGE = "Sorry, I encountered an error. Please try again."
GENERIC_GATEWAY_MESSAGE = "Failed to get response"
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
CREDITS_EXHAUSTED_MESSAGE = "AI credits exhausted. Please add credits to continue."

HTTP_PAYMENT_REQUIRED = 402
HTTP_TOO_MANY_REQUESTS = 429


class AssistantError(Exception):
    """Base assistant error with rich context."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}
        self.user_message = user_message or message


class GatewayError(AssistantError):
    """Non-2xx response from the assistant endpoint before streaming began."""


class RateLimitError(GatewayError):
    """Endpoint rejected the request with 429."""

    def __init__(
        self,
        message: str = RATE_LIMIT_MESSAGE,
        retry_after: float | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("status_code", HTTP_TOO_MANY_REQUESTS)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class CreditsExhaustedError(GatewayError):
    """Endpoint rejected the request with 402."""

    def __init__(self, message: str = CREDITS_EXHAUSTED_MESSAGE, **kwargs: Any):
        kwargs.setdefault("status_code", HTTP_PAYMENT_REQUIRED)
        super().__init__(message, **kwargs)


class AssistantConnectionError(AssistantError):
    """Transport failure before a response arrived."""


class StreamingError(AssistantError):
    """Transport failure while the reply was streaming."""


class MissingStreamError(AssistantError):
    """Successful response with no body to read."""
