"""Markdown parser producing the intermediate tree consumed by the renderer.

mistune v3 runs in AST mode; its token dictionaries are folded into
:class:`ASTNode` objects so the DOCX renderer never sees mistune internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import mistune

Token = dict[str, Any]


class NodeType(Enum):
    DOCUMENT = "document"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TEXT = "text"
    BOLD = "bold"
    ITALIC = "italic"
    STRIKETHROUGH = "strikethrough"
    INLINE_CODE = "inline_code"
    CODE_BLOCK = "code_block"
    ORDERED_LIST = "ordered_list"
    UNORDERED_LIST = "unordered_list"
    LIST_ITEM = "list_item"
    TABLE = "table"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"
    BLOCKQUOTE = "blockquote"
    HORIZONTAL_RULE = "horizontal_rule"
    LINK = "link"
    IMAGE = "image"
    FOOTNOTE_REF = "footnote_ref"
    FOOTNOTE_DEF = "footnote_def"
    LINE_BREAK = "line_break"
    SOFT_BREAK = "soft_break"


@dataclass
class ASTNode:
    type: NodeType
    children: list[ASTNode] = field(default_factory=list)
    text: str = ""
    level: int = 0
    language: str = ""
    url: str = ""
    title: str = ""
    align: str = ""
    is_header: bool = False
    # None for plain list items, True/False for task list items
    checked: Optional[bool] = None
    footnote_id: str = ""
    start: int = 1

    def plain_text(self) -> str:
        """Concatenated text of this node and all descendants."""
        return self.text + "".join(child.plain_text() for child in self.children)


# Tokens that only wrap inline children
_INLINE_CONTAINERS = {
    "strong": NodeType.BOLD,
    "emphasis": NodeType.ITALIC,
    "strikethrough": NodeType.STRIKETHROUGH,
    "paragraph": NodeType.PARAGRAPH,
    "block_text": NodeType.PARAGRAPH,
}

# Tokens mapped to a leaf node with no payload
_BARE_NODES = {
    "thematic_break": NodeType.HORIZONTAL_RULE,
    "linebreak": NodeType.LINE_BREAK,
    "softbreak": NodeType.SOFT_BREAK,
}


class MarkdownParser:
    """Parse Markdown text into an :class:`ASTNode` tree."""

    def __init__(self) -> None:
        self._md = mistune.create_markdown(
            renderer=None,
            plugins=["table", "strikethrough", "footnotes", "task_lists"],
        )

    def parse(self, markdown_text: str) -> ASTNode:
        """Return a *DOCUMENT* node for *markdown_text*."""
        tokens: list[Token] = self._md(markdown_text)  # type: ignore[assignment]
        return ASTNode(type=NodeType.DOCUMENT, children=self._convert_all(tokens))

    # -- dispatch -----------------------------------------------------------

    def _convert_all(self, tokens: Any) -> list[ASTNode]:
        if isinstance(tokens, str):
            return [ASTNode(type=NodeType.TEXT, text=tokens)] if tokens else []
        nodes: list[ASTNode] = []
        for tok in tokens or []:
            if tok.get("type") == "footnotes":
                nodes.extend(self._footnote(child) for child in tok.get("children", []))
                continue
            node = self._convert(tok)
            if node is not None:
                nodes.append(node)
        return nodes

    def _convert(self, tok: Token) -> Optional[ASTNode]:
        ttype = tok.get("type", "")
        if ttype in _INLINE_CONTAINERS:
            return ASTNode(
                type=_INLINE_CONTAINERS[ttype],
                children=self._convert_all(tok.get("children") or tok.get("text", "")),
            )
        if ttype in _BARE_NODES:
            return ASTNode(type=_BARE_NODES[ttype])
        handler = getattr(self, f"_{ttype}", None)
        if handler is not None:
            return handler(tok)
        raw = tok.get("raw", tok.get("text", ""))
        return ASTNode(type=NodeType.TEXT, text=str(raw)) if raw else None

    # -- leaves -------------------------------------------------------------

    def _text(self, tok: Token) -> ASTNode:
        return ASTNode(type=NodeType.TEXT, text=str(tok.get("raw", "")))

    def _codespan(self, tok: Token) -> ASTNode:
        return ASTNode(type=NodeType.INLINE_CODE, text=str(tok.get("raw", "")))

    def _block_code(self, tok: Token) -> ASTNode:
        info = tok.get("attrs", {}).get("info") or ""
        return ASTNode(
            type=NodeType.CODE_BLOCK,
            text=str(tok.get("raw", "")),
            language=info.split()[0] if info.strip() else "",
        )

    def _blank_line(self, _tok: Token) -> None:
        return None

    # -- blocks -------------------------------------------------------------

    def _heading(self, tok: Token) -> ASTNode:
        return ASTNode(
            type=NodeType.HEADING,
            level=tok.get("attrs", {}).get("level", 1),
            children=self._convert_all(tok.get("children")),
        )

    def _block_quote(self, tok: Token) -> ASTNode:
        return ASTNode(
            type=NodeType.BLOCKQUOTE,
            children=self._convert_all(tok.get("children")),
        )

    def _list(self, tok: Token) -> ASTNode:
        attrs = tok.get("attrs", {})
        ordered = bool(attrs.get("ordered"))
        return ASTNode(
            type=NodeType.ORDERED_LIST if ordered else NodeType.UNORDERED_LIST,
            children=self._convert_all(tok.get("children")),
            start=attrs.get("start") or 1,
        )

    def _list_item(self, tok: Token) -> ASTNode:
        return ASTNode(
            type=NodeType.LIST_ITEM,
            children=self._convert_all(tok.get("children")),
        )

    def _task_list_item(self, tok: Token) -> ASTNode:
        node = self._list_item(tok)
        node.checked = bool(tok.get("attrs", {}).get("checked", False))
        return node

    # -- links --------------------------------------------------------------

    def _link(self, tok: Token) -> ASTNode:
        attrs = tok.get("attrs", {})
        return ASTNode(
            type=NodeType.LINK,
            url=attrs.get("url", ""),
            title=attrs.get("title") or "",
            children=self._convert_all(tok.get("children")),
        )

    def _image(self, tok: Token) -> ASTNode:
        attrs = tok.get("attrs", {})
        alt = ASTNode(type=NodeType.DOCUMENT, children=self._convert_all(tok.get("children")))
        return ASTNode(
            type=NodeType.IMAGE,
            url=attrs.get("url", ""),
            title=attrs.get("title") or "",
            text=alt.plain_text(),
        )

    # -- tables -------------------------------------------------------------

    def _table(self, tok: Token) -> ASTNode:
        rows: list[ASTNode] = []
        for section in tok.get("children", []):
            cells_or_rows = section.get("children", [])
            if section.get("type") == "table_head":
                rows.append(self._table_row(cells_or_rows, is_header=True))
            else:
                rows.extend(
                    self._table_row(row.get("children", []), is_header=False)
                    for row in cells_or_rows
                )
        return ASTNode(type=NodeType.TABLE, children=rows)

    def _table_row(self, cells: list[Token], *, is_header: bool) -> ASTNode:
        return ASTNode(
            type=NodeType.TABLE_ROW,
            children=[
                ASTNode(
                    type=NodeType.TABLE_CELL,
                    children=self._convert_all(cell.get("children")),
                    align=cell.get("attrs", {}).get("align") or "",
                    is_header=is_header,
                )
                for cell in cells
            ],
        )

    # -- footnotes ----------------------------------------------------------

    def _footnote_ref(self, tok: Token) -> ASTNode:
        attrs = tok.get("attrs", {})
        return ASTNode(
            type=NodeType.FOOTNOTE_REF,
            footnote_id=str(attrs.get("index", tok.get("raw", ""))),
        )

    def _footnote(self, tok: Token) -> ASTNode:
        attrs = tok.get("attrs", {})
        return ASTNode(
            type=NodeType.FOOTNOTE_DEF,
            footnote_id=str(attrs.get("index", attrs.get("key", ""))),
            children=self._convert_all(tok.get("children")),
        )
