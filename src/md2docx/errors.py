"""Exceptions raised by the md2docx pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorContext:
    """Per-item context attached to an error while a batch runs."""

    item_index: Optional[int] = None


class Md2DocxError(RuntimeError):
    """Base class for all md2docx exceptions."""


class ContextualError(Md2DocxError):
    """An error that carries an :class:`ErrorContext`.

    The batch runner updates ``context.item_index`` and re-raises the same
    object instead of wrapping it again.
    """

    def __init__(self, message: str, *, item_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = ErrorContext(item_index=item_index)

    @property
    def item_index(self) -> Optional[int]:
        return self.context.item_index


class ValidationError(ContextualError):
    """Raised when a configured field, binary slot or option is invalid."""


class ConversionError(ContextualError):
    """Raised when the rendering engine fails to produce a document."""


class ItemProcessingError(ContextualError):
    """Raised when an unexpected error escapes a single item."""
