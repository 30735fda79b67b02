"""Tests for style configuration merging."""

from __future__ import annotations

import logging

import pytest

from md2docx.style import Alignment, Direction, DocumentType, StyleConfig, merge_style

DEFAULTS = {
    "titleSize": 48,
    "heading1Size": 48,
    "heading2Size": 36,
    "heading3Size": 32,
    "heading4Size": 28,
    "heading5Size": 24,
    "paragraphSize": 24,
    "listItemSize": 24,
    "codeBlockSize": 20,
    "blockquoteSize": 24,
    "headingSpacing": 240,
    "paragraphSpacing": 240,
    "lineSpacing": 1.15,
    "paragraphAlignment": "LEFT",
    "direction": "LTR",
}


class TestDefaults:
    def test_default_values(self):
        assert StyleConfig().to_dict() == DEFAULTS

    def test_knob_names_cover_defaults(self):
        assert set(StyleConfig.knob_names()) == set(DEFAULTS)

    def test_document_types(self):
        assert [t.value for t in DocumentType] == ["document", "report"]


class TestMergeStyle:
    @pytest.mark.parametrize("overrides", [None, {}])
    def test_no_overrides_gives_defaults(self, overrides):
        assert merge_style(overrides).to_dict() == DEFAULTS

    def test_override_wins_others_default(self):
        merged = merge_style({"paragraphSize": 30, "direction": "RTL"}).to_dict()
        assert merged["paragraphSize"] == 30
        assert merged["direction"] == "RTL"
        for key in set(DEFAULTS) - {"paragraphSize", "direction"}:
            assert merged[key] == DEFAULTS[key]

    def test_every_knob_overridable(self):
        overrides = {key: f"value-{key}" for key in DEFAULTS}
        assert merge_style(overrides).to_dict() == overrides

    def test_result_is_total(self):
        merged = merge_style({"heading3Size": 40})
        assert set(merged.to_dict()) == set(DEFAULTS)

    def test_unknown_keys_ignored_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="md2docx.style"):
            merged = merge_style({"fontFamily": "Arial", "titleSize": 60})
        assert "fontFamily" not in merged.to_dict()
        assert merged.titleSize == 60
        assert "fontFamily" in caplog.text

    def test_defaults_not_mutated(self):
        merge_style({"paragraphSize": 99})
        assert StyleConfig().paragraphSize == 24


class TestHelpers:
    @pytest.mark.parametrize("level, size", [(1, 48), (3, 32), (5, 24), (6, 24)])
    def test_heading_size(self, level, size):
        assert StyleConfig().heading_size(level) == size

    def test_alignment_is_case_insensitive(self):
        assert merge_style({"paragraphAlignment": "justified"}).alignment is Alignment.JUSTIFIED

    def test_rtl(self):
        assert merge_style({"direction": Direction.RTL.value}).is_rtl
        assert not StyleConfig().is_rtl

    def test_invalid_alignment_raises(self):
        with pytest.raises(ValueError):
            merge_style({"paragraphAlignment": "DIAGONAL"}).alignment
