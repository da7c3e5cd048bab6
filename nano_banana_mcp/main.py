from __future__ import annotations

import argparse
from typing import Annotated, Any, NoReturn

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import CallNext, Middleware, MiddlewareContext
from fastmcp.tools.tool import ToolResult
from loguru import logger
from mcp import types as mt
from pydantic import Field, ValidationError

from .exceptions import InternalError, MethodNotFoundError, NanoBananaError
from .router import ToolRouter, invalid_arguments
from .settings import get_settings
from .shard.enums import ErrorKind, ToolName
from .shard.instructions import SERVER_INSTRUCTIONS, TOOL_DESCRIPTIONS
from .state import SessionStore
from .utils.logging import configure_logging

app = FastMCP("nano-banana-mcp", instructions=SERVER_INSTRUCTIONS)

store = SessionStore()
router = ToolRouter(store)

_KIND_PREFIXES = tuple(f"{kind.value}:" for kind in ErrorKind)


def _raise_tool_error(e: Exception) -> NoReturn:
    """Convert an exception to a ToolError for proper MCP error handling.

    FastMCP turns a ToolError into an MCP result with isError=True. The
    message is prefixed with the stable error kind so clients can branch on
    it without parsing free text.
    """
    if not isinstance(e, NanoBananaError):
        logger.error(f"Unexpected error: {type(e).__name__}: {e}")
        e = InternalError(f"Tool execution failed: {e}")
    raise ToolError(e.to_tool_message())


async def _call(name: ToolName, arguments: dict[str, Any]) -> ToolResult:
    # Omitted optional arguments arrive as None; the router sees only what was sent.
    sent = {key: value for key, value in arguments.items() if value is not None}
    try:
        return await router.dispatch(name, sent)
    except Exception as e:
        _raise_tool_error(e)


class ToolErrorMiddleware(Middleware):
    """Kind-prefix the errors FastMCP raises before a tool body runs.

    Unknown tool names and arguments that fail FastMCP's own type binding
    otherwise reach the client as FastMCP's free text.
    """

    async def on_call_tool(
        self,
        context: MiddlewareContext[mt.CallToolRequestParams],
        call_next: CallNext[mt.CallToolRequestParams, ToolResult],
    ) -> ToolResult:
        name = context.message.name
        if not router.has_tool(name):
            _raise_tool_error(MethodNotFoundError(name))
        try:
            return await call_next(context)
        except ValidationError as e:
            _raise_tool_error(invalid_arguments(name, e))
        except ToolError as e:
            if str(e).startswith(_KIND_PREFIXES):
                raise
            cause = e.__cause__ or e.__context__
            if isinstance(cause, ValidationError):
                _raise_tool_error(invalid_arguments(name, cause))
            _raise_tool_error(InternalError(f"Tool execution failed: {e}"))


app.add_middleware(ToolErrorMiddleware())


@app.tool(
    name=ToolName.CONFIGURE_GEMINI_TOKEN.value,
    description=TOOL_DESCRIPTIONS["configure_gemini_token"],
    annotations={
        "title": "Configure Gemini Token",
        "readOnlyHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def mcp_configure_gemini_token(
    apiKey: Annotated[str | None, Field(description="Your Gemini API key from Google AI Studio (required)")] = None,
) -> ToolResult:
    """Set the Gemini API key for this session."""
    return await _call(ToolName.CONFIGURE_GEMINI_TOKEN, {"apiKey": apiKey})


@app.tool(
    name=ToolName.GENERATE_IMAGE.value,
    description=TOOL_DESCRIPTIONS["generate_image"],
    annotations={
        "title": "Generate Image",
        "readOnlyHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def mcp_generate_image(
    prompt: Annotated[
        str | None, Field(description="Text prompt describing the NEW image to create from scratch (required)")
    ] = None,
    relative_save_path: Annotated[
        str | None,
        Field(description='Optional relative path within the workplace directory to save the image (e.g., "subfolder/image.png")'),
    ] = None,
) -> ToolResult:
    """Generate a new image from a text prompt."""
    return await _call(ToolName.GENERATE_IMAGE, {"prompt": prompt, "relative_save_path": relative_save_path})


@app.tool(
    name=ToolName.EDIT_IMAGE.value,
    description=TOOL_DESCRIPTIONS["edit_image"],
    annotations={
        "title": "Edit Image",
        "readOnlyHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def mcp_edit_image(
    imagePath: Annotated[str | None, Field(description="Full file path to the main image file to edit (required)")] = None,
    prompt: Annotated[
        str | None, Field(description="Text describing the modifications to make to the existing image (required)")
    ] = None,
    relative_save_path: Annotated[
        str | None,
        Field(description='Optional relative path within the workplace directory to save the edited image (e.g., "subfolder/edited.png")'),
    ] = None,
    referenceImages: Annotated[
        list[str] | None,
        Field(
            description=(
                "Optional array of file paths to additional reference images to use during editing "
                "(e.g., for style transfer, adding elements, etc.)"
            )
        ),
    ] = None,
) -> ToolResult:
    """Edit an existing image file, optionally guided by reference images."""
    return await _call(
        ToolName.EDIT_IMAGE,
        {
            "imagePath": imagePath,
            "prompt": prompt,
            "relative_save_path": relative_save_path,
            "referenceImages": referenceImages,
        },
    )


@app.tool(
    name=ToolName.GET_CONFIGURATION_STATUS.value,
    description=TOOL_DESCRIPTIONS["get_configuration_status"],
    annotations={
        "title": "Configuration Status",
        "readOnlyHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def mcp_get_configuration_status() -> ToolResult:
    return await _call(ToolName.GET_CONFIGURATION_STATUS, {})


@app.tool(
    name=ToolName.GET_LAST_IMAGE_INFO.value,
    description=TOOL_DESCRIPTIONS["get_last_image_info"],
    annotations={
        "title": "Last Image Info",
        "readOnlyHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def mcp_get_last_image_info() -> ToolResult:
    return await _call(ToolName.GET_LAST_IMAGE_INFO, {})


def main() -> None:
    parser = argparse.ArgumentParser(description="Nano Banana MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse", "streamable-http"],
        help="Transport to use (stdio, sse, http, streamable-http). Default: stdio",
    )
    parser.add_argument("--host", help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to listen on")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)

    # Configuration is read exactly once, before any tool call is served.
    store.load_from_environment(settings)

    transport = args.transport
    logger.info(f"Starting nano-banana MCP server with {transport or 'stdio'} transport")

    # FastMCP's stdio transport does not accept `host`/`port` kwargs.
    http_transports = {"http", "sse", "streamable-http"}
    if transport in http_transports:
        app.run(transport=transport, host=args.host, port=args.port)
    else:
        app.run()


if __name__ == "__main__":
    main()
