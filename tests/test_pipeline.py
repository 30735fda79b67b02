"""Tests for item packaging, options and batch processing."""

from __future__ import annotations

import io
import json
import zipfile

import pytest

from md2docx import pipeline
from md2docx.config import ConversionOptions, SourceKind
from md2docx.converter import ConversionRequest
from md2docx.errors import (
    ContextualError,
    ConversionError,
    ItemProcessingError,
    ValidationError,
)
from md2docx.items import DOCX_MIME_TYPE, BinaryData, ErrorRecord, InputItem, OutputItem
from md2docx.packaging import package_result
from md2docx.pipeline import process_item, run_batch
from md2docx.sources import BinarySource, FieldSource
from md2docx.style import DocumentType


class RecordingEngine:
    """Engine double that records requests and returns fixed bytes."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.requests: list[ConversionRequest] = []
        self.fail_on = fail_on

    async def render(self, request: ConversionRequest) -> bytes:
        self.requests.append(request)
        if self.fail_on is not None and self.fail_on in request.markdown:
            raise RuntimeError(f"cannot render {self.fail_on}")
        return b"PK-docx"


class PresetContextEngine:
    """Engine raising an error that already carries an item index."""

    async def render(self, request: ConversionRequest) -> bytes:
        raise ConversionError("nested failure", item_index=99)


class BrokenOptions:
    def __call__(self, index, item):
        raise KeyError("no such parameter")


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------

class TestPackageResult:

    def test_copies_json_and_sets_single_slot(self):
        source = InputItem(
            json={"id": 7, "markdown": "# x"},
            binary={"data": BinaryData.from_bytes(b"old"), "extra": BinaryData.from_bytes(b"e")},
        )
        out = package_result(
            b"DOCX", file_name="out.docx", output_slot="doc", source_item=source, item_index=3
        )
        assert out.json == source.json
        assert out.json is not source.json
        assert list(out.binary) == ["doc"]
        artifact = out.binary["doc"]
        assert artifact.data == b"DOCX"
        assert artifact.file_name == "out.docx"
        assert artifact.mime_type == DOCX_MIME_TYPE
        assert artifact.file_extension == "docx"
        assert artifact.file_size == 4
        assert out.paired_item == 3

    def test_to_json_encodes_base64(self):
        out = package_result(
            b"abc", file_name="a.docx", output_slot="data", source_item=InputItem(json={"k": 1})
        )
        payload = out.to_json()
        assert payload["json"] == {"k": 1}
        assert payload["binary"]["data"]["data"] == "YWJj"
        assert payload["binary"]["data"]["mimeType"] == DOCX_MIME_TYPE

    def test_error_record_json(self):
        record = ErrorRecord(item_index=2, message="boom")
        assert record.to_json() == {"json": {"error": "boom"}, "pairedItem": 2}


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

class TestConversionOptions:

    def test_defaults(self):
        opts = ConversionOptions()
        assert opts.to_dict() == {
            "source": "fromField",
            "markdownField": "markdown",
            "binaryPropertyName": "data",
            "filename": "document.docx",
            "outputBinaryProperty": "data",
            "documentType": "document",
            "advancedOptions": {},
        }
        assert opts.markdown_source() == FieldSource("markdown")

    def test_from_mapping(self):
        opts = ConversionOptions.from_mapping({
            "source": "fromBinary",
            "binaryPropertyName": "file",
            "documentType": "report",
            "advancedOptions": {"lineSpacing": 2.0},
        })
        assert opts.source is SourceKind.FROM_BINARY
        assert opts.markdown_source() == BinarySource("file")
        assert opts.document_type is DocumentType.REPORT
        assert opts.style().lineSpacing == 2.0

    @pytest.mark.parametrize(
        "params, name",
        [
            ({"source": "fromUrl"}, "source"),
            ({"documentType": "memo"}, "documentType"),
            ({"advancedOptions": "big"}, "advancedOptions"),
        ],
    )
    def test_invalid_values(self, params, name):
        with pytest.raises(ValidationError, match=name):
            ConversionOptions.from_mapping(params)

    def test_unknown_keys_ignored(self):
        assert ConversionOptions.from_mapping({"colour": "red"}) == ConversionOptions()

    def test_from_file(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text(json.dumps({"filename": "x.docx"}), encoding="utf-8")
        assert ConversionOptions.from_file(path).filename == "x.docx"

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(ValidationError, match="Cannot read options file"):
            ConversionOptions.from_file(tmp_path / "missing.json")

    def test_from_file_rejects_non_object(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValidationError):
            ConversionOptions.from_file(path)


# ---------------------------------------------------------------------------
# Single item
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestProcessItem:

    async def test_field_scenario_with_real_engine(self):
        item = InputItem(json={"markdown": "# Title\nBody"})
        out = await process_item(item, 0, ConversionOptions())
        assert isinstance(out, OutputItem)
        assert out.json == {"markdown": "# Title\nBody"}
        artifact = out.binary["data"]
        assert artifact.mime_type == DOCX_MIME_TYPE
        assert artifact.file_name == "document.docx"
        assert artifact.data
        assert zipfile.is_zipfile(io.BytesIO(artifact.data))

    async def test_binary_source_normalizes_escapes(self):
        engine = RecordingEngine()
        item = InputItem(binary={"data": BinaryData.from_bytes("Hello\\nWorld".encode("utf-8"))})
        opts = ConversionOptions(source=SourceKind.FROM_BINARY)
        await process_item(item, 0, opts, engine)
        assert engine.requests[0].markdown == "Hello\nWorld"

    async def test_input_binary_not_carried_over(self):
        item = InputItem(binary={"data": BinaryData.from_bytes(b"# x"), "logo": BinaryData.from_bytes(b"p")})
        opts = ConversionOptions(source=SourceKind.FROM_BINARY, output_binary_property="docx")
        out = await process_item(item, 0, opts, RecordingEngine())
        assert list(out.binary) == ["docx"]

    async def test_style_and_document_type_forwarded(self):
        engine = RecordingEngine()
        opts = ConversionOptions.from_mapping({
            "documentType": "report",
            "advancedOptions": {"heading2Size": 40, "bogus": 1},
        })
        await process_item(InputItem(json={"markdown": "x"}), 0, opts, engine)
        request = engine.requests[0]
        assert request.document_type is DocumentType.REPORT
        assert request.style.heading2Size == 40
        assert "bogus" not in request.style.to_dict()

    async def test_mapping_options(self):
        engine = RecordingEngine()
        out = await process_item(
            InputItem(json={"md": "x"}), 0, {"markdownField": "md", "filename": "n.docx"}, engine
        )
        assert out.binary["data"].file_name == "n.docx"


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestRunBatch:

    async def test_empty_batch(self):
        assert await run_batch([], ConversionOptions()) == []

    async def test_continue_on_fail_records_error(self):
        items = [InputItem(json={"markdown": "# ok"}), InputItem(json={"other": 1})]
        results = await run_batch(
            items, ConversionOptions(), continue_on_fail=True, engine=RecordingEngine()
        )
        assert len(results) == 2
        assert isinstance(results[0], OutputItem)
        assert isinstance(results[1], ErrorRecord)
        assert results[1].item_index == 1
        assert '"markdown"' in results[1].message

    async def test_order_preserved_with_failures(self):
        items = [
            InputItem(json={"markdown": "fine 0"}),
            InputItem(json={"markdown": "FAIL 1"}),
            InputItem(json={}),
            InputItem(json={"markdown": "fine 3"}),
            InputItem(json={"markdown": "FAIL 4"}),
        ]
        engine = RecordingEngine(fail_on="FAIL")
        results = await run_batch(items, ConversionOptions(), continue_on_fail=True, engine=engine)
        kinds = [type(r) for r in results]
        assert kinds == [OutputItem, ErrorRecord, ErrorRecord, OutputItem, ErrorRecord]
        for index, result in enumerate(results):
            if isinstance(result, ErrorRecord):
                assert result.item_index == index
            else:
                assert result.paired_item == index
        assert results[1].message == "cannot render FAIL"

    async def test_sequential_processing_order(self):
        engine = RecordingEngine()
        items = [InputItem(json={"markdown": f"item {i}"}) for i in range(4)]
        await run_batch(items, ConversionOptions(), engine=engine)
        assert [r.markdown for r in engine.requests] == [f"item {i}" for i in range(4)]

    async def test_abort_raises_with_index(self):
        items = [InputItem(json={"markdown": "ok"}), InputItem(json={})]
        with pytest.raises(ValidationError) as info:
            await run_batch(items, ConversionOptions(), engine=RecordingEngine())
        assert info.value.item_index == 1

    async def test_abort_stops_at_first_failure(self):
        engine = RecordingEngine(fail_on="bad")
        items = [InputItem(json={"markdown": t}) for t in ("good", "bad", "never")]
        with pytest.raises(ConversionError) as info:
            await run_batch(items, ConversionOptions(), engine=engine)
        assert info.value.item_index == 1
        assert [r.markdown for r in engine.requests] == ["good", "bad"]

    async def test_contextual_error_reraised_unchanged(self):
        with pytest.raises(ConversionError) as info:
            await run_batch(
                [InputItem(json={"markdown": "x"})],
                ConversionOptions(),
                engine=PresetContextEngine(),
            )
        assert str(info.value) == "nested failure"
        assert info.value.item_index == 0
        assert info.value.__cause__ is None

    async def test_plain_error_wrapped_with_index(self):
        with pytest.raises(ItemProcessingError) as info:
            await run_batch([InputItem(json={"markdown": "x"})], BrokenOptions())
        assert isinstance(info.value, ContextualError)
        assert info.value.item_index == 0
        assert isinstance(info.value.__cause__, KeyError)

    async def test_default_engine_built_once_per_batch(self, monkeypatch):
        created: list[RecordingEngine] = []

        def make_engine():
            engine = RecordingEngine()
            created.append(engine)
            return engine

        monkeypatch.setattr(pipeline, "DocxEngine", make_engine)
        items = [InputItem(json={"markdown": f"item {i}"}) for i in range(3)]
        await run_batch(items, ConversionOptions())
        assert len(created) == 1
        assert len(created[0].requests) == 3

    async def test_per_item_options(self):
        engine = RecordingEngine()
        items = [InputItem(json={"markdown": "a"}), InputItem(json={"markdown": "b"})]

        def options_for(index, _item):
            return ConversionOptions(filename=f"doc-{index}.docx")

        results = await run_batch(items, options_for, engine=engine)
        assert [r.binary["data"].file_name for r in results] == ["doc-0.docx", "doc-1.docx"]

    async def test_invalid_options_recorded_per_item(self):
        results = await run_batch(
            [InputItem(json={"markdown": "a"})],
            {"documentType": "memo"},
            continue_on_fail=True,
            engine=RecordingEngine(),
        )
        assert isinstance(results[0], ErrorRecord)
        assert "documentType" in results[0].message
