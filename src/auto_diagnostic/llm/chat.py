from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, TextIO

import httpx
from openai import OpenAI, OpenAIError

from ..logging import get_logger
from ..util.errors import CredentialError

LOG = get_logger(__name__)

OPENAI_API_KEY = "OPENAI_API_KEY"


@dataclass(frozen=True)
class ChatInput:
    model: str
    max_tokens: int
    system_prompt: str
    user_prompt: str


def resolve_api_key(configured: Optional[str], environ: Optional[Mapping[str, str]] = None) -> str:
    """
    The OPENAI_API_KEY environment variable wins over the configured key.
    """
    env = os.environ if environ is None else environ
    from_env = (env.get(OPENAI_API_KEY) or "").strip()
    if from_env:
        return from_env
    if configured and configured.strip():
        return configured.strip()
    raise CredentialError(f"{OPENAI_API_KEY} variable is not set")


def create_client(api_key: str) -> OpenAI:
    return OpenAI(api_key=api_key)


def _chunk_text(chunk: Any) -> str:
    parts: List[str] = []
    for choice in getattr(chunk, "choices", None) or []:
        delta = getattr(choice, "delta", None)
        content = getattr(delta, "content", None) if delta is not None else None
        if content:
            parts.append(str(content))
    return "".join(parts)


def send_request(client: Any, chat_input: ChatInput, *, out: Optional[TextIO] = None) -> str:
    """Stream a chat completion, echoing chunks to `out` as they arrive.

    Returns the accumulated text. Opening the stream may raise; an error
    while reading it is written inline as "error: ..." and ends the stream,
    keeping whatever text already arrived.
    """
    sink = out or sys.stdout
    stream = client.chat.completions.create(
        model=chat_input.model,
        max_tokens=chat_input.max_tokens,
        messages=[
            {"role": "system", "content": chat_input.system_prompt},
            {"role": "user", "content": chat_input.user_prompt},
        ],
        stream=True,
    )

    collected: List[str] = []
    try:
        for chunk in stream:
            text = _chunk_text(chunk)
            if not text:
                continue
            sink.write(text)
            sink.flush()
            collected.append(text)
    except (OpenAIError, httpx.HTTPError) as e:
        LOG.warning("Chat completion stream failed", extra={"error": str(e)})
        message = f"error: {e}\n"
        sink.write(message)
        sink.flush()
        collected.append(message)
    return "".join(collected)
