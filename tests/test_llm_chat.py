from __future__ import annotations

import io
from types import SimpleNamespace
from typing import Any, Dict, Iterator, List

import httpx
import pytest

from auto_diagnostic.llm import ChatInput, resolve_api_key, send_request
from auto_diagnostic.util.errors import CredentialError


def _chunk(content: Any) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeCompletions:
    def __init__(self, stream: Iterator[Any]) -> None:
        self._stream = stream
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Iterator[Any]:
        self.calls.append(kwargs)
        return self._stream


def _client(stream: Iterator[Any]) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(stream)))


def _input() -> ChatInput:
    return ChatInput(model="gpt-4o", max_tokens=100, system_prompt="system", user_prompt="<data>\nx\n</data>\n\n")


def test_resolve_api_key_prefers_environment() -> None:
    assert resolve_api_key("sk-config", {"OPENAI_API_KEY": "sk-env"}) == "sk-env"


def test_resolve_api_key_falls_back_to_config() -> None:
    assert resolve_api_key("sk-config", {"OPENAI_API_KEY": "  "}) == "sk-config"


def test_resolve_api_key_missing() -> None:
    with pytest.raises(CredentialError, match="OPENAI_API_KEY variable is not set"):
        resolve_api_key(None, {})


def test_send_request_streams_and_accumulates() -> None:
    client = _client(iter([_chunk("## Diag"), _chunk(None), _chunk("nosis\n"), SimpleNamespace(choices=[])]))
    out = io.StringIO()

    text = send_request(client, _input(), out=out)

    assert text == "## Diagnosis\n"
    assert out.getvalue() == "## Diagnosis\n"
    call = client.chat.completions.calls[0]
    assert call["model"] == "gpt-4o"
    assert call["max_tokens"] == 100
    assert call["stream"] is True
    assert call["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "<data>\nx\n</data>\n\n"},
    ]


def test_send_request_stream_error_is_written_inline() -> None:
    def _stream() -> Iterator[Any]:
        yield _chunk("partial")
        raise httpx.ReadError("connection reset")

    out = io.StringIO()

    text = send_request(_client(_stream()), _input(), out=out)

    assert text == "partialerror: connection reset\n"
    assert out.getvalue() == text
