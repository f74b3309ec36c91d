from typing import Optional


class SamuraicordError(Exception):
    """Base exception for samuraicord."""


class ConfigError(SamuraicordError):
    """Raised when config.yaml cannot be parsed or a required setting is missing."""


class TableError(SamuraicordError):
    """Raised when the samurai CSV is missing a required column."""


# --- Chat adapter failures ---
class ChatError(SamuraicordError):
    """Base class for every failure of a single chat call. None are retried."""

    kind = "chat error"


class TransportError(ChatError):
    kind = "connection failure"


class UpstreamError(ChatError):
    """The server reported an error through an `error` field."""

    kind = "server error"

    def __init__(self, message: str) -> None:
        super().__init__(f"ollama error: {message}")
        self.message = message


class HttpStatusError(UpstreamError):
    kind = "bad status"

    def __init__(self, status_code: int, body: str) -> None:
        ChatError.__init__(self, f"ollama returned non-2xx: status={status_code} body={body}")
        self.message = body
        self.status_code = status_code
        self.body = body


class MalformedChunkError(ChatError):
    kind = "malformed response"

    def __init__(self, reason: str, status_code: int, line: Optional[str] = None) -> None:
        super().__init__(f"ollama returned unexpected json line: {reason} (status={status_code})")
        self.reason = reason
        self.status_code = status_code
        self.line = line


class UnexpectedResponseError(ChatError):
    kind = "unexpected response"

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"ollama returned unexpected response: status={status_code} body={body}")
        self.status_code = status_code
        self.body = body
