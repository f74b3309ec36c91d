from samuraicord.chat import AdapterConfig, ChatAdapter, ChatMessage
from samuraicord.exceptions import (
    ChatError,
    HttpStatusError,
    MalformedChunkError,
    TransportError,
    UnexpectedResponseError,
    UpstreamError,
)

__all__ = [
    "AdapterConfig",
    "ChatAdapter",
    "ChatMessage",
    "ChatError",
    "HttpStatusError",
    "MalformedChunkError",
    "TransportError",
    "UnexpectedResponseError",
    "UpstreamError",
]
