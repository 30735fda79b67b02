"""Work items flowing through the conversion pipeline.

An :class:`InputItem` is a structured record (``json``) plus named binary
slots.  Each processed item yields either an :class:`OutputItem` or, when the
batch tolerates failures, an :class:`ErrorRecord`.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from md2docx.errors import ValidationError

DOCX_MIME_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


# ---------------------------------------------------------------------------
# Input side
# ---------------------------------------------------------------------------

@dataclass
class BinaryData:
    """A lazily readable byte buffer attached to an item.

    Usage::

        slot = BinaryData.from_bytes(b"# Hello", file_name="hello.md")
        data = await slot.read()
    """

    loader: Callable[[], Awaitable[bytes]]
    file_name: Optional[str] = None
    mime_type: str = "application/octet-stream"

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        *,
        file_name: Optional[str] = None,
        mime_type: str = "application/octet-stream",
    ) -> BinaryData:
        async def _load() -> bytes:
            return data

        return cls(loader=_load, file_name=file_name, mime_type=mime_type)

    @classmethod
    def from_base64(
        cls,
        encoded: str,
        *,
        slot_name: str,
        file_name: Optional[str] = None,
        mime_type: str = "application/octet-stream",
    ) -> BinaryData:
        """Wrap base64 text; decoding errors surface when the slot is read."""

        async def _load() -> bytes:
            try:
                return base64.b64decode(encoded, validate=True)
            except binascii.Error as exc:
                raise ValidationError(
                    f'Binary property "{slot_name}" is not valid base64.'
                ) from exc

        return cls(loader=_load, file_name=file_name, mime_type=mime_type)

    @classmethod
    def from_path(cls, path: str | Path) -> BinaryData:
        """Reference a file on disk; it is read off the event loop on demand."""
        path = Path(path)
        mime_type = mimetypes.guess_type(path.name)[0] or "text/markdown"

        async def _load() -> bytes:
            return await asyncio.to_thread(path.read_bytes)

        return cls(loader=_load, file_name=path.name, mime_type=mime_type)

    async def read(self) -> bytes:
        return await self.loader()


@dataclass
class InputItem:
    json: dict[str, Any] = field(default_factory=dict)
    binary: dict[str, BinaryData] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Output side
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BinaryArtifact:
    """A produced file: bytes tagged with a filename and MIME type."""

    data: bytes
    file_name: str
    mime_type: str = DOCX_MIME_TYPE

    @property
    def file_extension(self) -> str:
        suffix = Path(self.file_name).suffix
        return suffix[1:] if suffix else ""

    @property
    def file_size(self) -> int:
        return len(self.data)

    def to_json(self) -> dict[str, Any]:
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "fileName": self.file_name,
            "fileExtension": self.file_extension,
            "fileSize": self.file_size,
            "mimeType": self.mime_type,
        }


@dataclass
class OutputItem:
    json: dict[str, Any]
    binary: dict[str, BinaryArtifact]
    paired_item: Optional[int] = None

    def to_json(self) -> dict[str, Any]:
        return {
            "json": self.json,
            "binary": {name: art.to_json() for name, art in self.binary.items()},
            "pairedItem": self.paired_item,
        }


@dataclass(frozen=True)
class ErrorRecord:
    """Stands in for an :class:`OutputItem` when an item failed."""

    item_index: int
    message: str

    def to_json(self) -> dict[str, Any]:
        return {"json": {"error": self.message}, "pairedItem": self.item_index}


BatchResult = Union[OutputItem, ErrorRecord]
