from __future__ import annotations

from enum import StrEnum


class ConfigSource(StrEnum):
    """Where the live configuration came from, tracked for status reporting.

    Transitions are ``UNSET -> ENVIRONMENT`` at startup and
    ``UNSET | ENVIRONMENT -> EXPLICIT_CALL`` on a successful configure call.
    The store never moves back to ``UNSET``.
    """

    ENVIRONMENT = "environment"
    EXPLICIT_CALL = "explicit_call"
    UNSET = "unset"


class GenerationMode(StrEnum):
    """Outbound request shape: text-only creation or image-plus-text editing."""

    CREATE = "create"
    EDIT = "edit"


class ErrorKind(StrEnum):
    """Stable error kinds surfaced to MCP clients."""

    INVALID_ARGUMENTS = "invalid_params"
    NOT_CONFIGURED = "not_configured"
    METHOD_NOT_FOUND = "method_not_found"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL = "internal_error"


class ToolName(StrEnum):
    """Public tool names. Values are part of the protocol surface; keep stable."""

    CONFIGURE_GEMINI_TOKEN = "configure_gemini_token"
    GENERATE_IMAGE = "generate_image"
    EDIT_IMAGE = "edit_image"
    GET_CONFIGURATION_STATUS = "get_configuration_status"
    GET_LAST_IMAGE_INFO = "get_last_image_info"


__all__ = ["ConfigSource", "GenerationMode", "ErrorKind", "ToolName"]
