"""Error kinds raised by the server.

Every failure that reaches an MCP client is one of the subclasses below.
Each carries a stable ``kind`` for clients and the JSON-RPC error code that
best matches it, plus an optional ``user_message`` when the text shown to
clients should differ from the internal message.
"""

from __future__ import annotations

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND

from .shard.enums import ErrorKind


class NanoBananaError(Exception):
    """Base class for all structured server errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    error_code: int = INTERNAL_ERROR

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message

    def to_tool_message(self) -> str:
        """Render the client-facing message, prefixed with the error kind."""
        return f"{self.kind.value}: {self.user_message}"


class InvalidArgumentsError(NanoBananaError):
    """Missing or malformed tool arguments, including an invalid credential."""

    kind = ErrorKind.INVALID_ARGUMENTS
    error_code = INVALID_PARAMS


class NotConfiguredError(NanoBananaError):
    """Generation attempted before a valid credential was set."""

    kind = ErrorKind.NOT_CONFIGURED
    error_code = INVALID_REQUEST

    def __init__(self, message: str = "Gemini API token not configured. Use configure_gemini_token first.") -> None:
        super().__init__(message)


class MethodNotFoundError(NanoBananaError):
    kind = ErrorKind.METHOD_NOT_FOUND
    error_code = METHOD_NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class UpstreamError(NanoBananaError):
    """The remote generative call itself failed (network, quota, malformed response)."""

    kind = ErrorKind.UPSTREAM_FAILURE
    error_code = INTERNAL_ERROR


class InternalError(NanoBananaError):
    kind = ErrorKind.INTERNAL
    error_code = INTERNAL_ERROR


class ImageReadError(InternalError):
    """The primary image of an edit could not be read."""

    def __init__(self, path: str, reason: Exception) -> None:
        self.path = path
        super().__init__(f"Cannot read image {path}: {reason}")


__all__ = [
    "NanoBananaError",
    "InvalidArgumentsError",
    "NotConfiguredError",
    "MethodNotFoundError",
    "UpstreamError",
    "InternalError",
    "ImageReadError",
]
