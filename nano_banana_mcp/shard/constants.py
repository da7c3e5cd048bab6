"""Project constants shared by the client, the assembler and the router.

Keep these values small in scope; anything that a deployment may want to
override belongs in ``settings.py`` instead.
"""

from __future__ import annotations

from typing import Final

from .enums import GenerationMode

# Default Gemini model used for both creation and editing.
DEFAULT_MODEL: Final[str] = "gemini-2.5-flash-image-preview"

# Mime type assumed for returned images when the service omits one.
DEFAULT_MIME: Final[str] = "image/png"

# Mime type assumed for input files with an unrecognised extension.
DEFAULT_INPUT_MIME: Final[str] = "image/jpeg"

# Extension-based mime heuristic for input images (no content sniffing).
INPUT_MIME_BY_EXTENSION: Final[dict[str, str]] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

# Generated filenames: ``{prefix}-{timestamp}-{token}.png``.
FILENAME_PREFIXES: Final[dict[GenerationMode, str]] = {
    GenerationMode.CREATE: "generated",
    GenerationMode.EDIT: "edited",
}
GENERATED_EXTENSION: Final[str] = ".png"
RANDOM_TOKEN_LENGTH: Final[int] = 6

# Permissions for directories created under the workplace.
DIRECTORY_MODE: Final[int] = 0o755

# Environment keys, echoed in status/help text.
ENV_API_KEY: Final[str] = "GEMINI_API_KEY"
ENV_WORKPLACE_PATH: Final[str] = "WORKPLACE_PATH"
