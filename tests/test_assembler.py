from __future__ import annotations

import base64
import os

import pytest

from conftest import SAMPLE_PNG_BYTES, image_part, text_part
from nano_banana_mcp.assembler import ResponseAssembler
from nano_banana_mcp.exceptions import InternalError
from nano_banana_mcp.schema import AssembledResponse, GenerationRequest
from nano_banana_mcp.shard.enums import GenerationMode


def _create(save_path: str | None = None) -> GenerationRequest:
    return GenerationRequest(mode=GenerationMode.CREATE, prompt="a cat", relative_save_path=save_path)


def _edit(save_path: str | None = None, refs: list[str] | None = None) -> GenerationRequest:
    return GenerationRequest(
        mode=GenerationMode.EDIT,
        prompt="add a hat",
        image_path="/in/cat.png",
        relative_save_path=save_path,
        reference_images=refs or [],
    )


class TestAssemble:
    def test_text_is_concatenated_in_order(self, store, workplace):
        assembled = ResponseAssembler(store).assemble(_create(), workplace, [text_part("Hello, "), text_part("world")])
        assert assembled.text == "Hello, world"
        assert assembled.artifacts == []

    def test_generated_names_use_mode_prefix(self, store, workplace):
        assembler = ResponseAssembler(store)
        created = assembler.assemble(_create(), workplace, [image_part()])
        edited = assembler.assemble(_edit(), workplace, [image_part()])

        assert os.path.basename(created.artifacts[0].absolute_path).startswith("generated-")
        assert os.path.basename(edited.artifacts[0].absolute_path).startswith("edited-")
        assert os.path.dirname(created.artifacts[0].absolute_path) == workplace

    def test_save_path_round_trip(self, store, workplace):
        assembled = ResponseAssembler(store).assemble(_create("out/pic.png"), workplace, [image_part()])

        expected = os.path.join(workplace, "out", "pic.png")
        assert assembled.artifacts[0].absolute_path == expected
        assert store.last_image_path == expected
        with open(expected, "rb") as f:
            assert f.read() == SAMPLE_PNG_BYTES

    def test_absolute_save_path_is_written_inside_workplace(self, store, workplace, tmp_path):
        outside = tmp_path / "outside"
        assembled = ResponseAssembler(store).assemble(_create(f"{outside}/pic.png"), workplace, [image_part()])

        path = assembled.artifacts[0].absolute_path
        assert path.startswith(workplace + os.sep)
        assert path.endswith(os.path.join(str(outside).lstrip(os.sep), "pic.png"))
        assert not outside.exists()

    def test_trailing_separator_save_path_writes_a_file(self, store, workplace):
        assembled = ResponseAssembler(store).assemble(_create("out/"), workplace, [image_part()])

        expected = os.path.join(workplace, "out")
        assert assembled.artifacts[0].absolute_path == expected
        assert os.path.isfile(expected)
        assert store.last_image_path == expected

    def test_same_save_path_for_every_image_last_write_wins(self, store, workplace):
        parts = [image_part(b"first"), text_part("between"), image_part(b"second")]
        assembled = ResponseAssembler(store).assemble(_create("out/pic.png"), workplace, parts)

        expected = os.path.join(workplace, "out", "pic.png")
        assert [a.absolute_path for a in assembled.artifacts] == [expected, expected]
        assert [a.source_index for a in assembled.artifacts] == [0, 2]
        assert os.listdir(os.path.join(workplace, "out")) == ["pic.png"]
        with open(store.last_image_path, "rb") as f:
            assert f.read() == b"second"

    def test_multiple_generated_names_are_distinct(self, store, workplace):
        assembled = ResponseAssembler(store).assemble(_create(), workplace, [image_part(b"a"), image_part(b"b")])
        paths = [a.absolute_path for a in assembled.artifacts]
        assert len(set(paths)) == 2
        assert store.last_image_path == paths[-1]

    def test_directory_created_even_without_images(self, store, workplace):
        ResponseAssembler(store).assemble(_create("nested/deeper/x.png"), workplace, [text_part("no image")])
        assert os.path.isdir(os.path.join(workplace, "nested", "deeper"))
        assert store.last_image_path is None

    def test_write_failure_is_internal_error(self, store, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(InternalError, match="Failed to save image"):
            ResponseAssembler(store).assemble(_create("sub/pic.png"), str(blocker), [image_part()])
        assert store.last_image_path is None

    @pytest.mark.asyncio
    async def test_assemble_async(self, store, workplace):
        assembled = await ResponseAssembler(store).assemble_async(_create(), workplace, [image_part()])
        assert len(assembled.artifacts) == 1


class TestBuildResult:
    def test_text_first_then_images_in_order(self, store, workplace):
        assembler = ResponseAssembler(store)
        req = _create()
        assembled = assembler.assemble(
            req,
            workplace,
            [image_part(b"one", "image/png"), text_part("desc"), image_part(b"two", "image/jpeg")],
        )
        result = assembler.build_result(req, "fake-model", assembled)

        assert [c.type for c in result.content] == ["text", "image", "image"]
        assert result.content[1].mimeType == "image/png"
        assert base64.b64decode(result.content[1].data) == b"one"
        assert result.content[2].mimeType == "image/jpeg"
        assert base64.b64decode(result.content[2].data) == b"two"

        text = result.content[0].text
        assert 'Prompt: "a cat"' in text
        assert "Description: desc" in text
        for artifact in assembled.artifacts:
            assert artifact.absolute_path in text

        structured = result.structured_content
        assert structured["mode"] == "create"
        assert structured["image_count"] == 2
        assert [i["source_index"] for i in structured["images"]] == [0, 2]

    def test_no_image_is_text_only_success(self, store):
        assembler = ResponseAssembler(store)
        result = assembler.build_result(_create(), "fake-model", AssembledResponse(text="just words"))

        assert len(result.content) == 1
        assert "No image was generated" in result.content[0].text
        assert result.structured_content["image_count"] == 0

    def test_edit_status_lists_original_and_references(self):
        req = _edit(refs=["/refs/a.png", "/refs/b.png"])
        text = ResponseAssembler.status_text(req, "fake-model", AssembledResponse())

        assert "Original: /in/cat.png" in text
        assert "- /refs/a.png\n- /refs/b.png" in text
        assert "No edited image was generated" in text
