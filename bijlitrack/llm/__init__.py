"""
Assistant request models and error types.

This package provides:
- Conversation, transcript and request-mode models
- The assistant error hierarchy
- The streaming HTTP client (``bijlitrack.llm.client``)
- SSE decoding (``bijlitrack.llm.streaming``)
"""

from __future__ import annotations

from .exceptions import (
    AssistantConnectionError,
    AssistantError,
    CreditsExhaustedError,
    GatewayError,
    MissingStreamError,
    RateLimitError,
    StreamingError,
)
from .models import (
    AssistantRequest,
    ChatMode,
    ConversationMessage,
    MessageRole,
    RequestMode,
    TargetLanguage,
    Transcript,
    TranslateMode,
    WireMessage,
    build_mode,
)

__all__ = [
    # Errors
    "AssistantConnectionError",
    "AssistantError",
    # Models
    "AssistantRequest",
    "ChatMode",
    "ConversationMessage",
    "CreditsExhaustedError",
    "GatewayError",
    "MessageRole",
    "MissingStreamError",
    "RateLimitError",
    "RequestMode",
    "StreamingError",
    "TargetLanguage",
    "Transcript",
    "TranslateMode",
    "WireMessage",
    "build_mode",
]
