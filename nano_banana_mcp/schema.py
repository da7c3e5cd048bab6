from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .shard import constants as C
from .shard.enums import ConfigSource, GenerationMode

# ------------------------------- Configuration ------------------------------- #


class Configuration(BaseModel):
    """Live credential configuration.

    Either absent (the server is unconfigured) or fully valid; instances are
    frozen and replaced wholesale, never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    credential: str = Field(min_length=1, description="Gemini API key.")
    workplace_path: str | None = Field(default=None, description="Directory under which images are saved.")


class ConfigurationStatus(BaseModel):
    """Read-only snapshot reported by get_configuration_status."""

    configured: bool
    source: ConfigSource
    workplace_path: str = Field(description="Effective workplace: configured value or the process working directory.")
    custom_workplace: bool = Field(default=False, description="True when workplace_path was configured explicitly.")


class SessionState(BaseModel):
    """Process-wide pointer to the most recently persisted image."""

    last_image_path: str | None = None


# ------------------------------ Generation input ----------------------------- #


class ImageInput(BaseModel):
    """An image read from disk, ready to be sent to the remote service."""

    path: str
    data: bytes
    mime_type: str


class GenerationRequest(BaseModel):
    """Mode-tagged request for the generative client.

    ``edit`` requires a primary ``image_path``; ``create`` must not carry one.
    """

    mode: GenerationMode
    prompt: str
    relative_save_path: str | None = None
    image_path: str | None = None
    reference_images: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_mode_inputs(self) -> GenerationRequest:
        if self.mode is GenerationMode.EDIT and not self.image_path:
            raise ValueError("edit requests require image_path")
        if self.mode is GenerationMode.CREATE and (self.image_path or self.reference_images):
            raise ValueError("create requests take no input images")
        return self

    @property
    def filename_prefix(self) -> str:
        return C.FILENAME_PREFIXES[self.mode]


# ------------------------------ Response parts ------------------------------- #


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image"] = "image"
    data: bytes
    mime_type: str = C.DEFAULT_MIME


ResponsePart = Annotated[TextPart | ImagePart, Field(discriminator="type")]


class PersistedArtifact(BaseModel):
    """One image part written to disk; ``source_index`` is its position in the response."""

    absolute_path: str
    source_index: int
    mime_type: str = C.DEFAULT_MIME


class AssembledResponse(BaseModel):
    """Result of folding a response: accumulated text and the persisted images in order."""

    text: str = ""
    artifacts: list[PersistedArtifact] = Field(default_factory=list)
    images: list[ImagePart] = Field(default_factory=list)


# ------------------------------- Tool arguments ------------------------------ #


class ConfigureTokenArgs(BaseModel):
    apiKey: str = Field(description="Your Gemini API key from Google AI Studio")


class GenerateImageArgs(BaseModel):
    prompt: str = Field(description="Text prompt describing the NEW image to create from scratch")
    relative_save_path: str | None = Field(
        default=None,
        description='Optional relative path within the workplace directory to save the image (e.g., "subfolder/image.png")',
    )


class EditImageArgs(BaseModel):
    imagePath: str = Field(description="Full file path to the main image file to edit")
    prompt: str = Field(description="Text describing the modifications to make to the existing image")
    relative_save_path: str | None = Field(
        default=None,
        description='Optional relative path within the workplace directory to save the edited image (e.g., "subfolder/edited.png")',
    )
    referenceImages: list[str] | None = Field(
        default=None,
        description="Optional array of file paths to additional reference images to use during editing (e.g., for style transfer, adding elements, etc.)",
    )


class NoArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ------------------------------ Structured output ---------------------------- #


class ImageDescriptor(BaseModel):
    """Lightweight image metadata for structured tool outputs (no blobs)."""

    file_path: str
    mime_type: str
    source_index: int


class ImageToolStructured(BaseModel):
    """Public structured output for image tools without binary payloads."""

    mode: GenerationMode
    model: str
    image_count: int = 0
    images: list[ImageDescriptor] = Field(default_factory=list)
    text: str = ""

    @classmethod
    def from_assembled(cls, mode: GenerationMode, model: str, assembled: AssembledResponse) -> ImageToolStructured:
        descriptors = [
            ImageDescriptor(file_path=a.absolute_path, mime_type=a.mime_type, source_index=a.source_index)
            for a in assembled.artifacts
        ]
        return cls(mode=mode, model=model, image_count=len(descriptors), images=descriptors, text=assembled.text)


__all__ = [
    "Configuration",
    "ConfigurationStatus",
    "SessionState",
    "ImageInput",
    "GenerationRequest",
    "TextPart",
    "ImagePart",
    "ResponsePart",
    "PersistedArtifact",
    "AssembledResponse",
    "ConfigureTokenArgs",
    "GenerateImageArgs",
    "EditImageArgs",
    "NoArgs",
    "ImageDescriptor",
    "ImageToolStructured",
]
