"""Fold a Gemini response into persisted files and an MCP tool result.

The fold walks the parts once, in order: text is concatenated, every image
is written to disk as soon as it is reached, and the session's last image
path follows each successful write. A failed write aborts the whole
operation even though the remote call succeeded.

With a caller-supplied ``relative_save_path`` every image in the response
is written under that same basename, so later images overwrite earlier ones
and exactly one file remains.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastmcp.tools.tool import ToolResult
from fastmcp.utilities.types import Image as FastMCPImage
from loguru import logger
from mcp.types import TextContent

from .exceptions import InternalError
from .schema import (
    AssembledResponse,
    GenerationRequest,
    ImagePart,
    ImageToolStructured,
    PersistedArtifact,
    ResponsePart,
    TextPart,
)
from .shard.enums import GenerationMode
from .state import SessionStore
from .utils.image_utils import (
    ensure_directory,
    generate_filename,
    resolve_target_directory,
    save_filename,
    save_image_bytes,
)

_RETRY_TIP = "\n\n💡 Tip: Try running the command again - sometimes the first call needs to warm up the model."


def _mime_to_format(mime: str | None) -> str:
    if not mime:
        return "png"
    lower = mime.lower()
    if lower.endswith("/jpeg") or lower.endswith("/jpg"):
        return "jpeg"
    return lower.split("/")[-1] or "png"


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


class ResponseAssembler:
    """Persists image parts and builds the result for one generation call."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def _filename_for(self, req: GenerationRequest) -> str:
        if req.relative_save_path:
            return save_filename(req.relative_save_path)
        return generate_filename(req.filename_prefix)

    def assemble(self, req: GenerationRequest, workplace: str, parts: list[ResponsePart]) -> AssembledResponse:
        """Blocking fold over ``parts``; run it off the event loop."""
        target_dir = resolve_target_directory(workplace, req.relative_save_path)
        assembled = AssembledResponse()
        try:
            ensure_directory(target_dir)
            for index, part in enumerate(parts):
                if isinstance(part, TextPart):
                    assembled.text += part.text
                    continue

                path = save_image_bytes(part.data, target_dir, self._filename_for(req))
                self.store.record_image(path)
                assembled.artifacts.append(PersistedArtifact(absolute_path=path, source_index=index, mime_type=part.mime_type))
                assembled.images.append(part)
        except OSError as e:
            logger.error(f"Failed to save image under {target_dir}: {e}")
            raise InternalError(f"Failed to save image: {e}") from e

        if not assembled.artifacts:
            logger.warning(f"No image parts in response ({len(parts)} parts)")
        return assembled

    async def assemble_async(self, req: GenerationRequest, workplace: str, parts: list[ResponsePart]) -> AssembledResponse:
        return await asyncio.to_thread(self.assemble, req, workplace, parts)

    # ------------------------------------------------------------------
    # Result rendering
    # ------------------------------------------------------------------
    @staticmethod
    def status_text(req: GenerationRequest, model: str, assembled: AssembledResponse) -> str:
        saved = [a.absolute_path for a in assembled.artifacts]

        if req.mode is GenerationMode.CREATE:
            text = f'🎨 Image generated with nano-banana ({model})!\n\nPrompt: "{req.prompt}"'
        else:
            text = f'🎨 Image edited with nano-banana!\n\nOriginal: {req.image_path}\nEdit prompt: "{req.prompt}"'
            if req.reference_images:
                text += f"\n\nReference images used:\n{_bullets(req.reference_images)}"

        if assembled.text:
            text += f"\n\nDescription: {assembled.text}"

        tool = "generate_image" if req.mode is GenerationMode.CREATE else "edit_image"
        if saved:
            label = "Image" if req.mode is GenerationMode.CREATE else "Edited image"
            text += f"\n\n📁 {label} saved to:\n{_bullets(saved)}"
            text += "\n\n💡 View the image by:"
            text += "\n1. Opening the file at the path above"
            text += f'\n2. Expanding the "{tool}" call details in your MCP client'
            text += "\n\n🔄 To modify this image, use: edit_image"
            text += "\n📋 To check current image info, use: get_last_image_info"
        else:
            if req.mode is GenerationMode.CREATE:
                text += "\n\nNote: No image was generated. The model may have returned only text."
            else:
                text += "\n\nNote: No edited image was generated."
            text += _RETRY_TIP
        return text

    def build_result(self, req: GenerationRequest, model: str, assembled: AssembledResponse) -> ToolResult:
        """Status text first, then one inline image per persisted artifact, in order."""
        content: list[Any] = [TextContent(type="text", text=self.status_text(req, model, assembled))]
        for image in assembled.images:
            img = FastMCPImage(data=image.data, format=_mime_to_format(image.mime_type))
            content.append(img.to_image_content(mime_type=image.mime_type))

        structured = ImageToolStructured.from_assembled(req.mode, model, assembled)
        return ToolResult(content=content, structured_content=structured.model_dump(mode="json"))


__all__ = ["ResponseAssembler"]
