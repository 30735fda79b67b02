"""Batch processing of work items.

Items are processed one after another.  Each item goes through source
resolution, newline normalization, style merging, rendering and packaging;
the first error ends that item.  With ``continue_on_fail`` the error becomes
an :class:`~md2docx.items.ErrorRecord` in the result list, otherwise it
aborts the batch.

Usage::

    results = await run_batch(
        [InputItem(json={"markdown": "# Title"})],
        ConversionOptions(),
        continue_on_fail=True,
    )
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from md2docx.config import ConversionOptions
from md2docx.converter import (
    ConversionRequest,
    DocxEngine,
    RenderEngine,
    invoke_conversion,
)
from md2docx.errors import ContextualError, ItemProcessingError
from md2docx.items import BatchResult, ErrorRecord, InputItem, OutputItem
from md2docx.packaging import package_result
from md2docx.sources import normalize_newlines, resolve_source

LOGGER = logging.getLogger(__name__)

OptionsProvider = Callable[[int, InputItem], Union[ConversionOptions, Mapping[str, Any]]]
OptionsArg = Union[ConversionOptions, Mapping[str, Any], OptionsProvider]


def _options_for(options: OptionsArg, item_index: int, item: InputItem) -> ConversionOptions:
    resolved = options(item_index, item) if callable(options) else options
    if isinstance(resolved, ConversionOptions):
        return resolved
    return ConversionOptions.from_mapping(resolved)


async def process_item(
    item: InputItem,
    item_index: int,
    options: OptionsArg,
    engine: Optional[RenderEngine] = None,
) -> OutputItem:
    """Convert a single item; raises on the first failing step."""
    opts = _options_for(options, item_index, item)

    LOGGER.debug("Item %d: resolving %s", item_index, opts.source.value)
    markdown = await resolve_source(item, opts.markdown_source())

    LOGGER.debug("Item %d: normalizing %d chars", item_index, len(markdown))
    markdown = normalize_newlines(markdown)

    LOGGER.debug("Item %d: merging style", item_index)
    request = ConversionRequest(
        markdown=markdown,
        document_type=opts.document_type,
        style=opts.style(),
    )

    LOGGER.debug("Item %d: converting", item_index)
    data = await invoke_conversion(request, engine)

    LOGGER.debug("Item %d: packaging %s", item_index, opts.filename)
    return package_result(
        data,
        file_name=opts.filename,
        output_slot=opts.output_binary_property,
        source_item=item,
        item_index=item_index,
    )


async def run_batch(
    items: Sequence[InputItem],
    options: OptionsArg,
    *,
    continue_on_fail: bool = False,
    engine: Optional[RenderEngine] = None,
) -> list[BatchResult]:
    """Process *items* in order and return one result per item.

    *options* is a :class:`~md2docx.config.ConversionOptions`, a mapping of
    camelCase options, or a callable ``(item_index, item)`` returning either,
    evaluated per item.

    Raises:
        ContextualError: the first failing item when *continue_on_fail* is
            false; ``context.item_index`` names that item.
    """
    engine = engine or DocxEngine()
    results: list[BatchResult] = []
    for item_index, item in enumerate(items):
        try:
            results.append(await process_item(item, item_index, options, engine))
        except Exception as exc:
            if continue_on_fail:
                LOGGER.warning("Item %d failed: %s", item_index, exc)
                results.append(ErrorRecord(item_index=item_index, message=str(exc)))
                continue
            LOGGER.error("Item %d failed, aborting batch: %s", item_index, exc)
            if isinstance(exc, ContextualError):
                exc.context.item_index = item_index
                raise
            raise ItemProcessingError(str(exc), item_index=item_index) from exc

    LOGGER.info(
        "Processed %d items (%d failed)",
        len(results), sum(isinstance(r, ErrorRecord) for r in results),
    )
    return results
