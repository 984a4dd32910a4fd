"""Relay between the chat client and the hosted LLM gateway."""

from __future__ import annotations

from .app import RelayRequest, create_app, forward_to_gateway
from .prompts import build_system_prompt

__all__ = [
    "RelayRequest",
    "build_system_prompt",
    "create_app",
    "forward_to_gateway",
]
