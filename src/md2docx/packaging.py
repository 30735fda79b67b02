"""Wrap rendered documents into output items."""

from __future__ import annotations

from typing import Optional

from md2docx.items import DOCX_MIME_TYPE, BinaryArtifact, InputItem, OutputItem


def package_result(
    data: bytes,
    *,
    file_name: str,
    output_slot: str,
    source_item: InputItem,
    item_index: Optional[int] = None,
) -> OutputItem:
    """Build the :class:`OutputItem` for one converted item.

    The structured record is copied from *source_item*; its binary slots are
    not carried over, the output holds only *output_slot*.
    """
    artifact = BinaryArtifact(data=data, file_name=file_name, mime_type=DOCX_MIME_TYPE)
    return OutputItem(
        json=dict(source_item.json),
        binary={output_slot: artifact},
        paired_item=item_index,
    )
