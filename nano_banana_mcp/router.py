from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from fastmcp.tools.tool import ToolResult
from loguru import logger
from mcp.types import TextContent
from pydantic import BaseModel, ValidationError

from .assembler import ResponseAssembler
from .engines.base_engine import EngineFactory
from .engines.gemini import GeminiImageClient
from .exceptions import InternalError, InvalidArgumentsError, MethodNotFoundError, NanoBananaError
from .schema import (
    Configuration,
    ConfigureTokenArgs,
    EditImageArgs,
    GenerateImageArgs,
    GenerationRequest,
    NoArgs,
)
from .shard import constants as C
from .shard.enums import ConfigSource, GenerationMode, ToolName
from .state import SessionStore, effective_workplace
from .utils.image_utils import normalize_save_path

Handler = Callable[[BaseModel], Awaitable[ToolResult]]


def text_result(text: str) -> ToolResult:
    return ToolResult(content=[TextContent(type="text", text=text)])


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts) or str(exc)


def invalid_arguments(tool: str, exc: ValidationError) -> InvalidArgumentsError:
    return InvalidArgumentsError(f"Invalid arguments for {tool}: {_validation_summary(exc)}")


class ToolRouter:
    """Validates tool calls, checks preconditions and dispatches them.

    Order per call: unknown tool names fail first, then arguments are
    validated, then generation tools check the configuration, then the
    operation runs. Anything escaping that is not a :class:`NanoBananaError`
    is wrapped into :class:`InternalError`.
    """

    def __init__(self, store: SessionStore, engine_factory: EngineFactory = GeminiImageClient) -> None:
        self.store = store
        self.engine_factory = engine_factory
        self.assembler = ResponseAssembler(store)
        self._handlers: dict[str, tuple[type[BaseModel], Handler]] = {
            ToolName.CONFIGURE_GEMINI_TOKEN: (ConfigureTokenArgs, self._configure_gemini_token),
            ToolName.GENERATE_IMAGE: (GenerateImageArgs, self._generate_image),
            ToolName.EDIT_IMAGE: (EditImageArgs, self._edit_image),
            ToolName.GET_CONFIGURATION_STATUS: (NoArgs, self._get_configuration_status),
            ToolName.GET_LAST_IMAGE_INFO: (NoArgs, self._get_last_image_info),
        }

    def has_tool(self, name: str) -> bool:
        return name in self._handlers

    async def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        entry = self._handlers.get(name)
        if entry is None:
            raise MethodNotFoundError(name)
        args_model, handler = entry

        try:
            args = args_model.model_validate(arguments or {})
        except ValidationError as e:
            raise invalid_arguments(name, e) from e

        try:
            return await handler(args)
        except NanoBananaError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in {name}")
            raise InternalError(f"Tool execution failed: {e}") from e

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    async def _configure_gemini_token(self, args: ConfigureTokenArgs) -> ToolResult:
        self.store.set_from_call(args.apiKey)
        return text_result(
            "✅ Gemini API token configured successfully! You can now use nano-banana image generation features."
        )

    async def _get_configuration_status(self, args: NoArgs) -> ToolResult:
        status = self.store.status()
        if not status.configured:
            return text_result(
                "❌ Gemini API token is not configured\n\n"
                "📝 Configuration options:\n"
                "1. 🥇 Environment variables (Recommended)\n"
                f"   - {C.ENV_API_KEY}: Your API key (required)\n"
                f"   - {C.ENV_WORKPLACE_PATH}: Custom workplace directory (optional)\n"
                "2. 🥈 Use configure_gemini_token tool\n\n"
                "💡 For the most secure setup, add this to your MCP configuration:\n"
                '"env": {\n'
                f'  "{C.ENV_API_KEY}": "your-api-key-here",\n'
                f'  "{C.ENV_WORKPLACE_PATH}": "/path/to/your/workplace"\n'
                "}"
            )

        text = "✅ Gemini API token is configured and ready to use"
        if status.source is ConfigSource.ENVIRONMENT:
            text += f"\n📍 Source: Environment variable ({C.ENV_API_KEY})\n💡 This is the most secure configuration method."
        elif status.source is ConfigSource.EXPLICIT_CALL:
            text += "\n📍 Source: configure_gemini_token tool call\n💡 Consider using environment variables for better security."

        text += f"\n\n📁 Images will be saved to: {status.workplace_path}"
        text += " (custom workplace path)" if status.custom_workplace else " (current working directory)"
        text += f"\n💡 Configure the workplace via environment variable {C.ENV_WORKPLACE_PATH}."
        return text_result(text)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    async def _generate_image(self, args: GenerateImageArgs) -> ToolResult:
        req = self._build_request(
            ToolName.GENERATE_IMAGE,
            mode=GenerationMode.CREATE,
            prompt=args.prompt,
            relative_save_path=args.relative_save_path,
        )
        configuration = self.store.require_configuration()
        return await self._run(req, configuration)

    async def _edit_image(self, args: EditImageArgs) -> ToolResult:
        req = self._build_request(
            ToolName.EDIT_IMAGE,
            mode=GenerationMode.EDIT,
            prompt=args.prompt,
            relative_save_path=args.relative_save_path,
            image_path=args.imagePath,
            reference_images=args.referenceImages or [],
        )
        configuration = self.store.require_configuration()
        return await self._run(req, configuration)

    @staticmethod
    def _build_request(tool: str, **fields: Any) -> GenerationRequest:
        save_path = fields.pop("relative_save_path", None)
        if save_path:
            try:
                save_path = normalize_save_path(save_path)
            except ValueError as e:
                raise InvalidArgumentsError(f"Invalid arguments for {tool}: relative_save_path: {e}") from e
        try:
            return GenerationRequest(relative_save_path=save_path or None, **fields)
        except ValidationError as e:
            raise invalid_arguments(tool, e) from e

    async def _run(self, req: GenerationRequest, configuration: Configuration) -> ToolResult:
        engine = self.engine_factory(configuration)
        parts = await engine.generate(req)
        workplace = effective_workplace(configuration)
        assembled = await self.assembler.assemble_async(req, workplace, parts)
        return self.assembler.build_result(req, engine.model, assembled)

    # ------------------------------------------------------------------
    # Session info
    # ------------------------------------------------------------------
    async def _get_last_image_info(self, args: NoArgs) -> ToolResult:
        path = self.store.last_image_path
        if not path:
            return text_result(
                "📷 No previous image found.\n\n"
                "Please generate or edit an image first, then this command will show information about your last image."
            )

        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError:
            return text_result(
                f"📷 Last Image Information:\n\nPath: {path}\nStatus: ❌ File not found\n\n"
                "💡 The image file may have been moved or deleted. Please generate a new image."
            )

        modified = datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
        return text_result(
            f"📷 Last Image Information:\n\nPath: {path}\nFile Size: {round(st.st_size / 1024)} KB\n"
            f"Last Modified: {modified}\n\n💡 Use edit_image to make further changes to this image."
        )


__all__ = ["ToolRouter", "invalid_arguments", "text_result"]
