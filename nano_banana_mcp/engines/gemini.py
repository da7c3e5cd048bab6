from __future__ import annotations

import asyncio
from typing import Any

from google import genai
from google.genai import types
from loguru import logger

from ..exceptions import ImageReadError, UpstreamError
from ..schema import (
    Configuration,
    GenerationRequest,
    ImageInput,
    ImagePart,
    ResponsePart,
    TextPart,
)
from ..settings import get_settings
from ..shard import constants as C
from ..shard.enums import GenerationMode
from ..utils.error_helpers import augment_with_configure_tip
from ..utils.image_utils import read_image_input, read_reference_images
from .base_engine import ImageEngine


class GeminiImageClient(ImageEngine):
    """Gemini image adapter.

    ``create`` sends the prompt text alone. ``edit`` sends the primary image,
    then every readable reference image in the order given, then the prompt
    text last. Unreadable reference images are dropped; an unreadable primary
    image fails the call before anything is sent.
    """

    def __init__(self, configuration: Configuration, model: str | None = None) -> None:
        self.configuration = configuration
        self.model = model or get_settings().gemini_model

    def _genai_client(self) -> genai.Client:
        return genai.Client(api_key=self.configuration.credential)

    @staticmethod
    def _image_part(image: ImageInput) -> types.Part:
        return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

    async def build_contents(self, req: GenerationRequest) -> Any:
        """Shape the outbound ``contents`` payload for the request mode."""
        if req.mode is GenerationMode.CREATE:
            return req.prompt

        assert req.image_path is not None
        try:
            primary = await asyncio.to_thread(read_image_input, req.image_path)
        except OSError as e:
            raise ImageReadError(req.image_path, e) from e

        references = await asyncio.to_thread(read_reference_images, req.reference_images)
        if len(references) < len(req.reference_images):
            logger.info(f"Using {len(references)} of {len(req.reference_images)} reference images")

        parts = [self._image_part(primary)]
        parts.extend(self._image_part(ref) for ref in references)
        parts.append(types.Part.from_text(text=req.prompt))
        return [types.Content(role="user", parts=parts)]

    @staticmethod
    def collect_parts(resp: types.GenerateContentResponse) -> list[ResponsePart]:
        """Normalize the first candidate's parts into ordered text/image parts.

        Thought parts are model reasoning, not answer content, and are dropped.
        """
        parts: list[ResponsePart] = []
        candidates = resp.candidates
        if not candidates:
            return parts
        content = candidates[0].content
        for part in (content.parts if content and content.parts else []):
            if part.thought:
                continue
            if part.text:
                parts.append(TextPart(text=part.text))
            inline = part.inline_data
            if inline is not None and inline.data:
                parts.append(ImagePart(data=inline.data, mime_type=inline.mime_type or C.DEFAULT_MIME))
        return parts

    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        contents = await self.build_contents(req)

        config = types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"])
        logger.info(f"Calling {self.model} ({req.mode.value})")
        try:
            client = self._genai_client()
            resp = await client.aio.models.generate_content(model=self.model, contents=contents, config=config)
        except Exception as e:
            logger.error(f"Gemini request failed: {type(e).__name__}: {e}")
            verb = "generate" if req.mode is GenerationMode.CREATE else "edit"
            raise UpstreamError(f"Failed to {verb} image: {augment_with_configure_tip(str(e))}") from e

        return self.collect_parts(resp)


__all__ = ["GeminiImageClient"]
