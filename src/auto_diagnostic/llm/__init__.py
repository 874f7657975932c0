from __future__ import annotations

from .chat import OPENAI_API_KEY, ChatInput, create_client, resolve_api_key, send_request

__all__ = [
    "OPENAI_API_KEY",
    "ChatInput",
    "create_client",
    "resolve_api_key",
    "send_request",
]
