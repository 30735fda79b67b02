"""Markdown source resolution and text normalization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union, assert_never

from md2docx.errors import ValidationError
from md2docx.items import InputItem


@dataclass(frozen=True)
class FieldSource:
    """Read Markdown from a named field of the item's ``json`` record."""

    field_name: str = "markdown"


@dataclass(frozen=True)
class BinarySource:
    """Decode a named binary slot of the item as UTF-8 Markdown."""

    slot_name: str = "data"


MarkdownSource = Union[FieldSource, BinarySource]


async def resolve_source(item: InputItem, source: MarkdownSource) -> str:
    """Return the raw Markdown text of *item* according to *source*.

    Raises:
        ValidationError: the field is missing or not a string, or the binary
            slot is missing or not valid UTF-8.
    """
    match source:
        case FieldSource(field_name=name):
            value = item.json.get(name)
            if not isinstance(value, str):
                raise ValidationError(
                    f'Field "{name}" must be a string containing Markdown.'
                )
            return value
        case BinarySource(slot_name=name):
            slot = item.binary.get(name)
            if slot is None:
                raise ValidationError(f'Binary property "{name}" is missing.')
            raw = await slot.read()
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ValidationError(
                    f'Binary property "{name}" is not valid UTF-8 text.'
                ) from exc
        case _:
            assert_never(source)


def normalize_newlines(text: str) -> str:
    r"""Turn literal ``\n`` escape sequences into real line breaks."""
    return text.replace("\\n", "\n")
