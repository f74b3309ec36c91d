"""Client for the Ollama `/api/chat` endpoint.

The request always asks for a non-streaming answer, but depending on its
configuration the server may still reply with newline-delimited JSON chunks.
The body is therefore fully buffered and decoded in three tiers:

1. a single `{"message": ..., "done": ...}` object,
2. a single `{"error": ...}` object,
3. NDJSON chunks, concatenated up to the first `"done": true`.
"""
import asyncio
from dataclasses import dataclass, field
import json
import logging
from typing import Any, Iterable, Literal, Optional

import httpx

from samuraicord.exceptions import (
    HttpStatusError,
    MalformedChunkError,
    TransportError,
    UnexpectedResponseError,
    UpstreamError,
)

Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")


# --- Data Classes ---
@dataclass(frozen=True)
class AdapterConfig:
    base_url: str = "http://127.0.0.1:11434"
    model: str = "hf.co/LiquidAI/LFM2.5-1.2B-Instruct-GGUF"
    system_prompt: str = "You are a helpful assistant."
    connect_timeout: float = 10.0
    overall_timeout: float = 30.0


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> "ChatMessage":
        if not isinstance(data, dict):
            raise ValueError(f"invalid type: expected a message object, got {type(data).__name__}")
        role = _require(data, "role", str)
        if role not in ROLES:
            raise ValueError(f"unknown role `{role}`, expected one of {', '.join(ROLES)}")
        return cls(role=role, content=_require(data, "content", str))


@dataclass(frozen=True)
class ChatRequest:
    model: str
    messages: tuple[ChatMessage, ...]
    stream: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
            "stream": self.stream,
        }


@dataclass(frozen=True)
class ChatReply:
    message: ChatMessage
    done: bool

    @classmethod
    def from_json(cls, text: str) -> "ChatReply":
        return cls(*_reply_fields(_load_object(text)))


@dataclass(frozen=True)
class ChatChunk:
    message: ChatMessage
    done: bool

    @classmethod
    def from_json(cls, text: str) -> "ChatChunk":
        return cls(*_reply_fields(_load_object(text)))


@dataclass(frozen=True)
class ErrorEnvelope:
    error: str

    @classmethod
    def from_json(cls, text: str) -> "ErrorEnvelope":
        return cls(error=_require(_load_object(text), "error", str))


# --- Decoding ---
def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid number `{name}`")


def _unique_fields(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    obj: dict[str, Any] = {}
    for key, value in pairs:
        if key in obj:
            raise ValueError(f"duplicate field `{key}`")
        obj[key] = value
    return obj


def _load_object(text: str) -> dict[str, Any]:
    # Strict JSON only: no NaN/Infinity, no repeated keys, bounded nesting.
    try:
        value = json.loads(text, parse_constant=_reject_constant, object_pairs_hook=_unique_fields)
    except RecursionError:
        raise ValueError("recursion limit exceeded") from None
    if not isinstance(value, dict):
        raise ValueError(f"invalid type: expected a JSON object, got {type(value).__name__}")
    return value


def _require(data: dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, kind):
        raise ValueError(f"invalid type for `{key}`: expected {kind.__name__}, got {type(value).__name__}")
    return value


def _reply_fields(data: dict[str, Any]) -> tuple[ChatMessage, bool]:
    if "message" not in data:
        raise ValueError("missing field `message`")
    return ChatMessage.from_dict(data["message"]), _require(data, "done", bool)


def parse_reply(text: str) -> Optional[ChatReply]:
    try:
        return ChatReply.from_json(text)
    except ValueError:
        return None


def parse_error(text: str) -> Optional[ErrorEnvelope]:
    try:
        return ErrorEnvelope.from_json(text)
    except ValueError:
        return None


def collect_chunks(body: str, status_code: int) -> Optional[str]:
    """Concatenate the content of NDJSON chunks.

    Returns None when the body holds no non-blank line. An error line or a
    line that is not a chunk aborts the whole call; text gathered so far is
    dropped.
    """
    parts: list[str] = []
    saw_any_chunk = False
    # Not splitlines(): U+2028 and friends are legal inside JSON strings.
    for raw_line in body.split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        saw_any_chunk = True

        if (err := parse_error(line)) is not None:
            raise UpstreamError(err.error)

        try:
            chunk = ChatChunk.from_json(line)
        except ValueError as e:
            raise MalformedChunkError(str(e), status_code, line) from e

        parts.append(chunk.message.content)
        if chunk.done:
            break

    return "".join(parts) if saw_any_chunk else None


def decode_body(status_code: int, body: str) -> str:
    if not 200 <= status_code < 300:
        raise HttpStatusError(status_code, body)

    if (reply := parse_reply(body)) is not None:
        return reply.message.content

    if (err := parse_error(body)) is not None:
        raise UpstreamError(err.error)

    # Some server setups emit NDJSON chunks even when stream=false was requested.
    combined = collect_chunks(body, status_code)
    if combined is not None:
        return combined

    raise UnexpectedResponseError(status_code, body)


# --- Adapter ---
@dataclass
class ChatAdapter:
    config: AdapterConfig
    client: Optional[httpx.AsyncClient] = None
    _owns_client: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.client is None:
            timeout = httpx.Timeout(self.config.overall_timeout, connect=self.config.connect_timeout)
            self.client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True

    async def chat_once(self, user_input: str) -> str:
        messages = [
            ChatMessage(role="system", content=self.config.system_prompt),
            ChatMessage(role="user", content=user_input),
        ]
        return await self.chat(messages)

    async def chat(self, messages: Iterable[ChatMessage]) -> str:
        request = ChatRequest(model=self.config.model, messages=tuple(messages))
        url = f"{self.config.base_url}/api/chat"
        logging.debug(f"ollama request: url={url} model={request.model} stream={request.stream}")

        try:
            status_code, body = await asyncio.wait_for(
                self._post(url, request), timeout=self.config.overall_timeout
            )
        except asyncio.TimeoutError as e:
            raise TransportError(f"ollama did not answer within {self.config.overall_timeout}s") from e
        except httpx.RequestError as e:
            raise TransportError(f"failed to send request to ollama: {e!r}") from e

        return decode_body(status_code, body)

    async def _post(self, url: str, request: ChatRequest) -> tuple[int, str]:
        # post() buffers the whole body before returning.
        response = await self.client.post(url, json=request.to_dict())
        return response.status_code, response.text

    async def aclose(self) -> None:
        if self._owns_client and self.client is not None:
            await self.client.aclose()

    async def __aenter__(self) -> "ChatAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
