from __future__ import annotations

import base64
import os
import sys

import pytest

# Add repository root to sys.path for `import nano_banana_mcp.*` in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from nano_banana_mcp.engines.base_engine import ImageEngine  # noqa: E402
from nano_banana_mcp.router import ToolRouter  # noqa: E402
from nano_banana_mcp.schema import Configuration, GenerationRequest, ImagePart, ResponsePart, TextPart  # noqa: E402
from nano_banana_mcp.settings import Settings  # noqa: E402
from nano_banana_mcp.state import SessionStore  # noqa: E402

# Sample 1x1 PNG image as base64
SAMPLE_PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChAI9Ecf1UQAAAABJRU5ErkJggg=="
SAMPLE_PNG_BYTES = base64.b64decode(SAMPLE_PNG_B64)


class FakeEngine(ImageEngine):
    """Engine double that records requests and replays canned parts."""

    def __init__(self, parts: list[ResponsePart] | None = None, model: str = "fake-image-model", error: Exception | None = None) -> None:
        self.parts = parts or []
        self.model = model
        self.error = error
        self.requests: list[GenerationRequest] = []
        self.configurations: list[Configuration] = []

    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return list(self.parts)

    def factory(self, configuration: Configuration) -> FakeEngine:
        self.configurations.append(configuration)
        return self


def image_part(data: bytes = SAMPLE_PNG_BYTES, mime_type: str = "image/png") -> ImagePart:
    return ImagePart(data=data, mime_type=mime_type)


def text_part(text: str) -> TextPart:
    return TextPart(text=text)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def workplace(tmp_path) -> str:
    path = tmp_path / "workplace"
    path.mkdir()
    return str(path)


@pytest.fixture
def configured_store(workplace) -> SessionStore:
    s = SessionStore()
    s.load_from_environment(Settings(_env_file=None, gemini_api_key="test-key", workplace_path=workplace))
    return s


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine(parts=[text_part("a cat"), image_part()])


@pytest.fixture
def router(configured_store, fake_engine) -> ToolRouter:
    return ToolRouter(configured_store, engine_factory=fake_engine.factory)
