"""FastAPI web service for Markdown to DOCX conversion.

Endpoints::

    GET  /health        Health check.
    GET  /options       Default conversion options and style settings.
    POST /convert       Upload a .md file and receive .docx back.
    POST /convert/text  Send raw Markdown text, receive .docx bytes.
    POST /batch         Convert a batch of JSON work items.

Run::

    uvicorn md2docx.server:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from md2docx import __version__
from md2docx.config import ConversionOptions
from md2docx.converter import Converter
from md2docx.errors import ContextualError, Md2DocxError, ValidationError
from md2docx.items import DOCX_MIME_TYPE, BinaryData, InputItem
from md2docx.pipeline import run_batch
from md2docx.style import StyleConfig

LOGGER = logging.getLogger(__name__)

app = FastAPI(
    title="md2docx",
    description="Markdown to DOCX conversion service",
    version=__version__,
)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class BinaryPayload(BaseModel):
    data: str
    fileName: Optional[str] = None
    mimeType: str = "text/markdown"


class ItemPayload(BaseModel):
    json_: dict[str, Any] = Field(default_factory=dict, alias="json")
    binary: dict[str, BinaryPayload] = Field(default_factory=dict)


class BatchRequest(BaseModel):
    items: list[ItemPayload]
    options: dict[str, Any] = Field(default_factory=dict)
    continueOnFail: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _content_disposition(filename: str) -> str:
    """Build Content-Disposition header, RFC 5987 for non-ASCII names."""
    try:
        filename.encode("ascii")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        encoded = quote(filename)
        return f"attachment; filename*=UTF-8''{encoded}"


def _parse_style(style: Optional[str]) -> dict[str, Any]:
    if not style:
        return {}
    try:
        overrides = json.loads(style)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"style must be a JSON object: {exc}") from exc
    if not isinstance(overrides, dict):
        raise ValidationError("style must be a JSON object.")
    return overrides


def _docx_response(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type=DOCX_MIME_TYPE,
        headers={"Content-Disposition": _content_disposition(filename)},
    )


def _to_input_item(payload: ItemPayload) -> InputItem:
    binary = {
        name: BinaryData.from_base64(
            slot.data, slot_name=name, file_name=slot.fileName, mime_type=slot.mimeType
        )
        for name, slot in payload.binary.items()
    }
    return InputItem(json=payload.json_, binary=binary)


@app.exception_handler(Md2DocxError)
async def _handle_md2docx_error(_request: Request, exc: Md2DocxError) -> JSONResponse:
    body: dict[str, Any] = {"detail": str(exc)}
    if isinstance(exc, ContextualError) and exc.item_index is not None:
        body["itemIndex"] = exc.item_index
    return JSONResponse(status_code=422, content=body)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@app.get("/options")
async def list_options() -> dict[str, Any]:
    """Default conversion options and style settings."""
    return {
        "options": ConversionOptions().to_dict(),
        "style": StyleConfig().to_dict(),
        "documentTypes": Converter.DOCUMENT_TYPES,
    }


@app.post("/convert")
async def convert_file(
    file: UploadFile = File(...),
    document_type: str = Form("document"),
    style: Optional[str] = Form(None),
    encoding: str = Form("utf-8"),
) -> Response:
    """Upload a Markdown file and receive DOCX back.

    - **file**: Markdown file (.md)
    - **document_type**: ``document`` or ``report``
    - **style**: JSON object of style overrides
    - **encoding**: Source file encoding
    """
    raw = await file.read()
    try:
        md_text = raw.decode(encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise ValidationError(f"Cannot decode upload as {encoding}: {exc}") from exc

    converter = _make_converter(document_type, style)
    docx_bytes = converter.convert_text(md_text)

    filename = (file.filename or "document.md").rsplit(".", 1)[0] + ".docx"
    return _docx_response(docx_bytes, filename)


@app.post("/convert/text")
async def convert_text(
    markdown: str = Form(...),
    document_type: str = Form("document"),
    style: Optional[str] = Form(None),
    filename: str = Form("document.docx"),
) -> Response:
    """Send raw Markdown text and receive DOCX bytes.

    - **markdown**: Markdown source text
    - **document_type**: ``document`` or ``report``
    - **style**: JSON object of style overrides
    """
    converter = _make_converter(document_type, style)
    return _docx_response(converter.convert_text(markdown), filename)


@app.post("/batch")
async def convert_batch(body: BatchRequest) -> dict[str, Any]:
    """Convert a batch of work items.

    Each item is ``{"json": {...}, "binary": {slot: {"data": base64}}}``.
    Results keep the input order; failed items appear as error records when
    ``continueOnFail`` is set.
    """
    items = [_to_input_item(payload) for payload in body.items]
    options = ConversionOptions.from_mapping(body.options)
    results = await run_batch(items, options, continue_on_fail=body.continueOnFail)
    LOGGER.info("Batch of %d items converted", len(items))
    return {"items": [result.to_json() for result in results]}


def _make_converter(document_type: str, style: Optional[str]) -> Converter:
    options = ConversionOptions.from_mapping({
        "documentType": document_type,
        "advancedOptions": _parse_style(style),
    })
    return Converter(options.document_type, options.advanced_options)
