"""Conversion options.

Options use the same camelCase names as the host workflow parameters::

    {
        "source": "fromBinary",
        "binaryPropertyName": "data",
        "filename": "report.docx",
        "documentType": "report",
        "advancedOptions": {"paragraphAlignment": "JUSTIFIED"}
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, assert_never

from md2docx.errors import ValidationError
from md2docx.sources import BinarySource, FieldSource, MarkdownSource
from md2docx.style import DocumentType, StyleConfig, merge_style

LOGGER = logging.getLogger(__name__)


class SourceKind(Enum):
    FROM_FIELD = "fromField"
    FROM_BINARY = "fromBinary"


_OPTION_FIELDS = {
    "source": "source",
    "markdownField": "markdown_field",
    "binaryPropertyName": "binary_property_name",
    "filename": "filename",
    "outputBinaryProperty": "output_binary_property",
    "documentType": "document_type",
    "advancedOptions": "advanced_options",
}


def _parse_enum(enum_cls: type[Enum], option: str, value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(str(m.value) for m in enum_cls)
        raise ValidationError(
            f'Option "{option}" must be one of: {choices} (got {value!r}).'
        ) from None


@dataclass(frozen=True)
class ConversionOptions:
    """Per-item conversion settings with their defaults."""

    source: SourceKind = SourceKind.FROM_FIELD
    markdown_field: str = "markdown"
    binary_property_name: str = "data"
    filename: str = "document.docx"
    output_binary_property: str = "data"
    document_type: DocumentType = DocumentType.DOCUMENT
    advanced_options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> ConversionOptions:
        """Build options from camelCase parameters.

        Raises:
            ValidationError: an enumerated option has an unknown value or
                ``advancedOptions`` is not a mapping.
        """
        kwargs: dict[str, Any] = {}
        for key, value in params.items():
            name = _OPTION_FIELDS.get(key)
            if name is None:
                LOGGER.warning("Ignoring unknown option %r", key)
                continue
            kwargs[name] = value

        if "source" in kwargs:
            kwargs["source"] = _parse_enum(SourceKind, "source", kwargs["source"])
        if "document_type" in kwargs:
            kwargs["document_type"] = _parse_enum(
                DocumentType, "documentType", kwargs["document_type"]
            )
        advanced = kwargs.get("advanced_options")
        if advanced is None:
            kwargs.pop("advanced_options", None)
        elif not isinstance(advanced, Mapping):
            raise ValidationError('Option "advancedOptions" must be a mapping.')
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> ConversionOptions:
        """Load options from a JSON file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ValidationError(f"Cannot read options file {path}: {exc}") from exc
        try:
            params = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Invalid options file {path}: {exc}") from exc
        if not isinstance(params, dict):
            raise ValidationError(f"Options file {path} must contain a JSON object.")
        return cls.from_mapping(params)

    def markdown_source(self) -> MarkdownSource:
        match self.source:
            case SourceKind.FROM_FIELD:
                return FieldSource(self.markdown_field)
            case SourceKind.FROM_BINARY:
                return BinarySource(self.binary_property_name)
            case _:
                assert_never(self.source)

    def style(self) -> StyleConfig:
        return merge_style(self.advanced_options)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "markdownField": self.markdown_field,
            "binaryPropertyName": self.binary_property_name,
            "filename": self.filename,
            "outputBinaryProperty": self.output_binary_property,
            "documentType": self.document_type.value,
            "advancedOptions": dict(self.advanced_options),
        }
