"""DOCX document renderer - converts the Markdown AST to a Word document.

The tree produced by :mod:`md2docx.parser` is written into a python-docx
``Document`` using the knobs of a :class:`~md2docx.style.StyleConfig`.  Sizes
arrive in half-points, spacing in twips.

The ``report`` document type adds a title (the first level-1 heading), a
table-of-contents field, a page break and page numbers in the footer.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, replace
from typing import Any, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor, Twips
from docx.text.paragraph import Paragraph

from md2docx.parser import ASTNode, NodeType
from md2docx.style import Alignment, DocumentType, StyleConfig

# ---------------------------------------------------------------------------
# OOXML constants
# ---------------------------------------------------------------------------

_ALIGN_MAP = {
    Alignment.LEFT: WD_ALIGN_PARAGRAPH.LEFT,
    Alignment.RIGHT: WD_ALIGN_PARAGRAPH.RIGHT,
    Alignment.CENTER: WD_ALIGN_PARAGRAPH.CENTER,
    Alignment.JUSTIFIED: WD_ALIGN_PARAGRAPH.JUSTIFY,
}

_CELL_ALIGN_MAP = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
}

# Schema order of <w:pPr> children; new elements must respect it.
_PPR_ORDER = (
    "w:pStyle", "w:keepNext", "w:keepLines", "w:pageBreakBefore", "w:framePr",
    "w:widowControl", "w:numPr", "w:suppressLineNumbers", "w:pBdr", "w:shd",
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap",
    "w:overflowPunct", "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN",
    "w:bidi", "w:adjustRightInd", "w:snapToGrid", "w:spacing", "w:ind",
    "w:contextualSpacing", "w:mirrorIndents", "w:suppressOverlap", "w:jc",
    "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)

_MONO_FONT = "Courier New"
_CODE_FILL = "F5F5F5"
_LINK_COLOR = RGBColor(0x05, 0x63, 0xC1)
_MUTED_COLOR = RGBColor(0x66, 0x66, 0x66)
_BULLETS = ("•", "◦", "▪")
_LIST_INDENT = 360  # twips per nesting level


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _half_points(value: Any) -> Pt:
    """Convert a half-point size knob to a python-docx length."""
    return Pt(float(value) / 2)


def _insert_ppr_child(paragraph: Paragraph, element) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    position = [qn(tag) for tag in _PPR_ORDER].index(element.tag)
    p_pr.insert_element_before(element, *_PPR_ORDER[position + 1:])


def _make_element(tag: str, **attrs: str):
    element = OxmlElement(tag)
    for name, value in attrs.items():
        element.set(qn(f"w:{name}"), value)
    return element


def _add_field(paragraph: Paragraph, instruction: str, placeholder: str) -> None:
    """Append a simple field (PAGE, TOC, ...) Word evaluates on open."""
    field = OxmlElement("w:fldSimple")
    field.set(qn("w:instr"), instruction)
    run = OxmlElement("w:r")
    text = OxmlElement("w:t")
    text.text = placeholder
    run.append(text)
    field.append(run)
    paragraph._p.append(field)


@dataclass(frozen=True)
class RunFormat:
    """Character formatting for a text run."""

    size: Any = 24
    bold: bool = False
    italic: bool = False
    strike: bool = False
    underline: bool = False
    monospace: bool = False
    superscript: bool = False
    color: Optional[RGBColor] = None

    def derive(self, **overrides) -> RunFormat:
        return replace(self, **overrides)


# ---------------------------------------------------------------------------
# DocxRenderer
# ---------------------------------------------------------------------------

class DocxRenderer:
    """Render an :class:`~md2docx.parser.ASTNode` document tree to DOCX bytes."""

    def __init__(
        self,
        style: Optional[StyleConfig] = None,
        document_type: DocumentType = DocumentType.DOCUMENT,
    ) -> None:
        self.style: StyleConfig = style or StyleConfig()
        self.document_type = document_type
        self._alignment = _ALIGN_MAP[self.style.alignment]
        self._rtl = self.style.is_rtl

    # ======================================================================
    # Public API
    # ======================================================================

    def render(self, doc: ASTNode) -> bytes:
        """Return a complete DOCX file as *bytes* for the given AST *doc*."""
        if doc.type != NodeType.DOCUMENT:
            raise ValueError(f"Expected DOCUMENT node, got {doc.type}")
        self._doc = Document()
        self._configure_base_styles()

        children = list(doc.children)
        if self.document_type is DocumentType.REPORT:
            children = self._render_report_front_matter(children)

        for child in children:
            self._render_node(child)

        buf = io.BytesIO()
        self._doc.save(buf)
        return buf.getvalue()

    # ======================================================================
    # Document setup
    # ======================================================================

    def _configure_base_styles(self) -> None:
        normal = self._doc.styles["Normal"]
        normal.font.size = _half_points(self.style.paragraphSize)
        fmt = normal.paragraph_format
        fmt.line_spacing = float(self.style.lineSpacing)
        fmt.space_before = Twips(0)
        fmt.space_after = Twips(int(self.style.paragraphSpacing))

    def _render_report_front_matter(self, children: list[ASTNode]) -> list[ASTNode]:
        """Emit title, contents and page numbering; return remaining nodes."""
        title_node = next(
            (n for n in children if n.type == NodeType.HEADING and n.level == 1),
            None,
        )
        if title_node is not None:
            title = self._doc.add_heading("", level=0)
            self._apply_direction(title)
            self._add_inline(title, title_node, RunFormat(size=self.style.titleSize))
            self._doc.core_properties.title = title_node.plain_text()[:255]
            children = [n for n in children if n is not title_node]

        contents = self._new_paragraph()
        _add_field(
            contents,
            'TOC \\o "1-3" \\h \\z \\u',
            "Right-click to update the table of contents.",
        )
        self._doc.add_page_break()

        for section in self._doc.sections:
            paragraphs = section.footer.paragraphs
            footer = paragraphs[0] if paragraphs else section.footer.add_paragraph()
            footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _add_field(footer, "PAGE", "1")
        return children

    # ======================================================================
    # Node dispatch
    # ======================================================================

    def _render_node(self, node: ASTNode) -> None:
        handler = getattr(self, f"_render_{node.type.value}", None)
        if handler is not None:
            handler(node)
        else:
            # Stray inline content at block level
            para = self._body_paragraph()
            self._add_inline_child(para, node, self._body_format(), None)

    # ======================================================================
    # Block renderers
    # ======================================================================

    def _render_heading(self, node: ASTNode) -> None:
        level = max(1, min(6, node.level))
        para = self._doc.add_heading("", level=level)
        self._apply_direction(para)
        spacing = int(self.style.headingSpacing)
        para.paragraph_format.space_before = Twips(spacing)
        para.paragraph_format.space_after = Twips(spacing // 2)
        self._add_inline(para, node, RunFormat(size=self.style.heading_size(level)))

    def _render_paragraph(self, node: ASTNode) -> None:
        para = self._body_paragraph()
        self._add_inline(para, node, self._body_format())

    def _render_text(self, node: ASTNode) -> None:
        if node.text:
            self._render_paragraph(ASTNode(type=NodeType.PARAGRAPH, children=[node]))

    def _render_code_block(self, node: ASTNode) -> None:
        para = self._new_paragraph()
        para.paragraph_format.line_spacing = 1.0
        para.paragraph_format.space_before = Twips(int(self.style.paragraphSpacing) // 2)
        _insert_ppr_child(
            para, _make_element("w:shd", val="clear", color="auto", fill=_CODE_FILL)
        )
        text = node.text[:-1] if node.text.endswith("\n") else node.text
        fmt = RunFormat(size=self.style.codeBlockSize, monospace=True)
        self._add_run(para, text or " ", fmt)

    def _render_blockquote(self, node: ASTNode) -> None:
        fmt = RunFormat(size=self.style.blockquoteSize, italic=True)
        for child in node.children:
            if child.type != NodeType.PARAGRAPH:
                self._render_node(child)
                continue
            para = self._body_paragraph()
            para.paragraph_format.left_indent = Twips(720)
            _insert_ppr_child(
                para,
                self._border("left", "single", sz="12", space="8", color="BFBFBF"),
            )
            self._add_inline(para, child, fmt)

    def _render_horizontal_rule(self, _node: ASTNode) -> None:
        para = self._new_paragraph()
        _insert_ppr_child(
            para, self._border("bottom", "single", sz="6", space="1", color="auto")
        )

    def _render_ordered_list(self, node: ASTNode) -> None:
        self._emit_list(node, depth=0)

    def _render_unordered_list(self, node: ASTNode) -> None:
        self._emit_list(node, depth=0)

    def _render_table(self, node: ASTNode) -> None:
        rows = [row for row in node.children if row.children]
        if not rows:
            return
        num_cols = max(len(row.children) for row in rows)
        table = self._doc.add_table(rows=len(rows), cols=num_cols)
        table.style = "Table Grid"

        base = self._body_format()
        for r, row in enumerate(rows):
            for c, cell_node in enumerate(row.children):
                para = table.cell(r, c).paragraphs[0]
                self._apply_direction(para)
                para.alignment = _CELL_ALIGN_MAP.get(cell_node.align, self._alignment)
                fmt = base.derive(bold=True) if cell_node.is_header else base
                self._add_inline(para, cell_node, fmt)

    def _render_footnote_def(self, node: ASTNode) -> None:
        fmt = self._body_format().derive(size=max(int(self.style.paragraphSize) - 4, 2))
        first = True
        for child in node.children or [ASTNode(type=NodeType.PARAGRAPH)]:
            if child.type != NodeType.PARAGRAPH:
                self._render_node(child)
                continue
            para = self._body_paragraph()
            if first:
                self._add_run(para, f"[{node.footnote_id}] ", fmt)
                first = False
            self._add_inline(para, child, fmt)

    def _render_image(self, node: ASTNode) -> None:
        para = self._body_paragraph()
        self._add_inline_child(para, node, self._body_format(), None)

    # ======================================================================
    # Lists
    # ======================================================================

    def _emit_list(self, node: ASTNode, *, depth: int) -> None:
        ordered = node.type == NodeType.ORDERED_LIST
        counter = node.start
        for item in node.children:
            if item.checked is not None:
                prefix = "☒ " if item.checked else "☐ "
            elif ordered:
                prefix = f"{counter}. "
            else:
                prefix = f"{_BULLETS[depth % len(_BULLETS)]} "
            self._emit_list_item(item, prefix=prefix, depth=depth)
            counter += 1

    def _emit_list_item(self, node: ASTNode, *, prefix: str, depth: int) -> None:
        fmt = self._body_format().derive(size=self.style.listItemSize)
        para = self._body_paragraph()
        para.paragraph_format.left_indent = Twips(_LIST_INDENT * (depth + 1))
        para.paragraph_format.first_line_indent = Twips(-_LIST_INDENT // 2)
        para.paragraph_format.space_after = Twips(0)
        self._add_run(para, prefix, fmt)

        inline_done = False
        for child in node.children:
            if child.type in (NodeType.ORDERED_LIST, NodeType.UNORDERED_LIST):
                self._emit_list(child, depth=depth + 1)
            elif child.type == NodeType.PARAGRAPH and not inline_done:
                self._add_inline(para, child, fmt)
                inline_done = True
            else:
                self._render_node(child)

    # ======================================================================
    # Paragraph and run builders
    # ======================================================================

    def _new_paragraph(self, style: Optional[str] = None) -> Paragraph:
        para = self._doc.add_paragraph(style=style)
        self._apply_direction(para)
        return para

    def _body_paragraph(self) -> Paragraph:
        para = self._new_paragraph()
        para.alignment = self._alignment
        return para

    def _body_format(self) -> RunFormat:
        return RunFormat(size=self.style.paragraphSize)

    def _apply_direction(self, para: Paragraph) -> None:
        if self._rtl:
            _insert_ppr_child(para, _make_element("w:bidi"))

    def _border(self, edge: str, val: str, **attrs: str):
        borders = _make_element("w:pBdr")
        borders.append(_make_element(f"w:{edge}", val=val, **attrs))
        return borders

    def _add_run(self, para: Paragraph, text: str, fmt: RunFormat, container=None):
        run = para.add_run(text)
        font = run.font
        font.size = _half_points(fmt.size)
        font.bold = fmt.bold or None
        font.italic = fmt.italic or None
        font.strike = fmt.strike or None
        font.underline = fmt.underline or None
        font.superscript = fmt.superscript or None
        if fmt.monospace:
            font.name = _MONO_FONT
        if fmt.color is not None:
            font.color.rgb = fmt.color
        if self._rtl:
            font.rtl = True
        if container is not None:
            container.append(run._r)
        return run

    # ======================================================================
    # Inline content
    # ======================================================================

    def _add_inline(self, para: Paragraph, node: ASTNode, fmt: RunFormat, container=None) -> None:
        if node.text and not node.children:
            self._add_run(para, node.text, fmt, container)
            return
        for child in node.children:
            self._add_inline_child(para, child, fmt, container)

    def _add_inline_child(self, para: Paragraph, node: ASTNode, fmt: RunFormat, container) -> None:
        nt = node.type

        if nt == NodeType.TEXT:
            if node.text:
                self._add_run(para, node.text, fmt, container)
        elif nt == NodeType.BOLD:
            self._add_inline(para, node, fmt.derive(bold=True), container)
        elif nt == NodeType.ITALIC:
            self._add_inline(para, node, fmt.derive(italic=True), container)
        elif nt == NodeType.STRIKETHROUGH:
            self._add_inline(para, node, fmt.derive(strike=True), container)
        elif nt == NodeType.INLINE_CODE:
            self._add_run(para, node.text, fmt.derive(monospace=True), container)
        elif nt == NodeType.LINK:
            self._add_link(para, node, fmt, container)
        elif nt == NodeType.IMAGE:
            alt = node.text or node.title or node.url or "image"
            muted = fmt.derive(italic=True, color=_MUTED_COLOR)
            self._add_run(para, f"[Image: {alt}]", muted, container)
        elif nt == NodeType.FOOTNOTE_REF:
            self._add_run(para, f"[{node.footnote_id}]", fmt.derive(superscript=True), container)
        elif nt == NodeType.LINE_BREAK:
            self._add_run(para, "", fmt, container).add_break()
        elif nt == NodeType.SOFT_BREAK:
            self._add_run(para, " ", fmt, container)
        else:
            text = node.plain_text()
            if text:
                self._add_run(para, text, fmt, container)

    def _add_link(self, para: Paragraph, node: ASTNode, fmt: RunFormat, container) -> None:
        link_fmt = fmt.derive(underline=True, color=_LINK_COLOR)
        if not node.url or container is not None:
            self._add_inline(para, node, link_fmt, container)
            return
        r_id = para.part.relate_to(node.url, RT.HYPERLINK, is_external=True)
        hyperlink = OxmlElement("w:hyperlink")
        hyperlink.set(qn("r:id"), r_id)
        para._p.append(hyperlink)
        if node.children:
            self._add_inline(para, node, link_fmt, hyperlink)
        else:
            self._add_run(para, node.url, link_fmt, hyperlink)
