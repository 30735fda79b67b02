"""Markdown-to-DOCX conversion: the rendering engine and how it is invoked.

The pipeline only depends on the :class:`RenderEngine` protocol.  The
bundled :class:`DocxEngine` ties the parser and renderer together;
:class:`Converter` is the synchronous single-document facade.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from md2docx.errors import ConversionError
from md2docx.parser import MarkdownParser
from md2docx.renderer import DocxRenderer
from md2docx.sources import normalize_newlines
from md2docx.style import DocumentType, StyleConfig, merge_style

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionRequest:
    markdown: str
    document_type: DocumentType = DocumentType.DOCUMENT
    style: StyleConfig = field(default_factory=StyleConfig)


class RenderEngine(Protocol):
    """Anything able to turn a :class:`ConversionRequest` into DOCX bytes."""

    async def render(self, request: ConversionRequest) -> bytes: ...


class DocxEngine:
    """Default engine: mistune parser + python-docx renderer."""

    def __init__(self) -> None:
        self.parser = MarkdownParser()

    def render_sync(self, request: ConversionRequest) -> bytes:
        doc = self.parser.parse(request.markdown)
        renderer = DocxRenderer(request.style, request.document_type)
        return renderer.render(doc)

    async def render(self, request: ConversionRequest) -> bytes:
        return await asyncio.to_thread(self.render_sync, request)


async def invoke_conversion(
    request: ConversionRequest,
    engine: Optional[RenderEngine] = None,
) -> bytes:
    """Render *request* with *engine* (the default engine when ``None``).

    Raises:
        ConversionError: the engine failed; the engine's message is kept.
    """
    engine = engine or DocxEngine()
    try:
        data = await engine.render(request)
    except ConversionError:
        raise
    except Exception as exc:
        raise ConversionError(str(exc)) from exc
    LOGGER.debug(
        "Rendered %s (%d bytes of Markdown -> %d bytes)",
        request.document_type.value, len(request.markdown), len(data),
    )
    return data


class Converter:
    """Convert Markdown content to DOCX format.

    Usage::

        converter = Converter(document_type="report")
        converter.convert_file("input.md", "output.docx")

        # or from string
        docx_bytes = converter.convert_text("# Hello")
    """

    DOCUMENT_TYPES = [t.value for t in DocumentType]

    def __init__(
        self,
        document_type: DocumentType | str = DocumentType.DOCUMENT,
        style: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.document_type = DocumentType(document_type)
        self.style = merge_style(style)
        self.engine = DocxEngine()

    def convert_text(self, markdown_text: str) -> bytes:
        """Convert Markdown text to DOCX bytes.

        Raises:
            ConversionError: rendering failed.
        """
        request = ConversionRequest(
            normalize_newlines(markdown_text), self.document_type, self.style
        )
        try:
            return self.engine.render_sync(request)
        except Exception as exc:
            raise ConversionError(str(exc)) from exc

    def convert_file(
        self,
        input_path: str | Path,
        output_path: str | Path,
        *,
        encoding: str = "utf-8",
    ) -> None:
        """Read a Markdown file and write the DOCX output."""
        input_path = Path(input_path)
        output_path = Path(output_path)

        docx_bytes = self.convert_text(input_path.read_text(encoding=encoding))

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(docx_bytes)
        LOGGER.info("Converted %s -> %s", input_path, output_path)
