from __future__ import annotations

from types import SimpleNamespace

import pytest
from google.genai import types

from conftest import SAMPLE_PNG_BYTES
from nano_banana_mcp.engines.gemini import GeminiImageClient
from nano_banana_mcp.exceptions import ImageReadError, UpstreamError
from nano_banana_mcp.schema import Configuration, GenerationRequest, ImagePart, TextPart
from nano_banana_mcp.shard.enums import GenerationMode


def _client() -> GeminiImageClient:
    return GeminiImageClient(Configuration(credential="k"), model="gemini-test-model")


def _response(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))])


class DummyModels:
    def __init__(self, resp=None, error: Exception | None = None):
        self.resp = resp
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.resp


def _patch_sdk(monkeypatch, engine: GeminiImageClient, models: DummyModels) -> None:
    monkeypatch.setattr(engine, "_genai_client", lambda: SimpleNamespace(aio=SimpleNamespace(models=models)))


@pytest.mark.asyncio
async def test_create_sends_prompt_alone():
    engine = _client()
    req = GenerationRequest(mode=GenerationMode.CREATE, prompt="a banana")
    assert await engine.build_contents(req) == "a banana"


@pytest.mark.asyncio
async def test_edit_orders_primary_references_then_prompt(tmp_path):
    primary = tmp_path / "main.png"
    primary.write_bytes(SAMPLE_PNG_BYTES)
    ref = tmp_path / "style.jpg"
    ref.write_bytes(b"jpeg-ref")

    engine = _client()
    req = GenerationRequest(
        mode=GenerationMode.EDIT,
        prompt="make it blue",
        image_path=str(primary),
        reference_images=[str(tmp_path / "missing.webp"), str(ref)],
    )
    contents = await engine.build_contents(req)

    assert len(contents) == 1
    parts = contents[0].parts
    assert len(parts) == 3
    assert parts[0].inline_data.data == SAMPLE_PNG_BYTES
    assert parts[0].inline_data.mime_type == "image/png"
    assert parts[1].inline_data.data == b"jpeg-ref"
    assert parts[1].inline_data.mime_type == "image/jpeg"
    assert parts[2].text == "make it blue"


@pytest.mark.asyncio
async def test_edit_unreadable_primary_fails_before_network(monkeypatch, tmp_path):
    engine = _client()
    models = DummyModels(resp=_response())
    _patch_sdk(monkeypatch, engine, models)

    req = GenerationRequest(mode=GenerationMode.EDIT, prompt="x", image_path=str(tmp_path / "gone.png"))
    with pytest.raises(ImageReadError, match="gone.png"):
        await engine.generate(req)
    assert models.calls == []


def test_collect_parts_preserves_order_and_defaults_mime():
    resp = _response(
        types.Part(text="Here you go. "),
        types.Part(inline_data=types.Blob(data=b"img-1", mime_type="image/jpeg")),
        types.Part(text="And another."),
        types.Part(inline_data=types.Blob(data=b"img-2")),
    )
    parts = GeminiImageClient.collect_parts(resp)

    assert parts == [
        TextPart(text="Here you go. "),
        ImagePart(data=b"img-1", mime_type="image/jpeg"),
        TextPart(text="And another."),
        ImagePart(data=b"img-2", mime_type="image/png"),
    ]


def test_collect_parts_drops_thought_parts():
    resp = _response(
        types.Part(text="Planning the composition...", thought=True),
        types.Part(inline_data=types.Blob(data=b"draft", mime_type="image/png"), thought=True),
        types.Part(text="Final answer."),
        types.Part(inline_data=types.Blob(data=b"img", mime_type="image/png")),
    )
    parts = GeminiImageClient.collect_parts(resp)

    assert parts == [TextPart(text="Final answer."), ImagePart(data=b"img", mime_type="image/png")]


def test_collect_parts_handles_empty_response():
    assert GeminiImageClient.collect_parts(types.GenerateContentResponse()) == []
    assert GeminiImageClient.collect_parts(types.GenerateContentResponse(candidates=[types.Candidate()])) == []


@pytest.mark.asyncio
async def test_generate_calls_sdk_with_model_and_modalities(monkeypatch):
    engine = _client()
    models = DummyModels(resp=_response(types.Part(inline_data=types.Blob(data=b"png", mime_type="image/png"))))
    _patch_sdk(monkeypatch, engine, models)

    parts = await engine.generate(GenerationRequest(mode=GenerationMode.CREATE, prompt="sunset"))

    assert parts == [ImagePart(data=b"png", mime_type="image/png")]
    call = models.calls[0]
    assert call["model"] == "gemini-test-model"
    assert call["contents"] == "sunset"
    assert call["config"].response_modalities == ["TEXT", "IMAGE"]


@pytest.mark.asyncio
async def test_sdk_failure_becomes_upstream_error(monkeypatch):
    engine = _client()
    _patch_sdk(monkeypatch, engine, DummyModels(error=RuntimeError("403 PERMISSION_DENIED: API key not valid")))

    with pytest.raises(UpstreamError) as excinfo:
        await engine.generate(GenerationRequest(mode=GenerationMode.CREATE, prompt="x"))

    assert "Failed to generate image" in excinfo.value.message
    assert "configure_gemini_token" in excinfo.value.message


def test_model_defaults_to_settings(monkeypatch):
    from nano_banana_mcp.engines import gemini

    monkeypatch.setattr(gemini, "get_settings", lambda: SimpleNamespace(gemini_model="from-settings"))
    assert GeminiImageClient(Configuration(credential="k")).model == "from-settings"
