"""Render a :class:`StructuredDocument` as a paginated PDF study guide.

Built on ReportLab Platypus: every block becomes one flowable and
``SimpleDocTemplate`` flows them across as many A4 pages as needed.
Page breaks are never computed here.

Visual treatment per block kind:

* **Heading** – bold uppercase indigo label with extra space above
* **ContextNote** – light-blue callout with a "why it matters" caption
* **AnalogyNote** – indented italic side note with a marker glyph
* **ChallengeQuestion** – dashed callout with an active-recall caption
* **WarningNote** – bold amber text with a warning glyph
* **Paragraph** – justified body text

The title and author line are drawn once at the top of the first page;
the footer is drawn on every page by the page callback.

Usage::

    from formatzero.rendering.pdf_renderer import render_pdf

    pdf_bytes = render_pdf(doc)                    # in memory
    path = render_pdf(doc, "output/Guia.pdf")      # on disk
"""

import html
import io
import logging
import os
from dataclasses import dataclass

from reportlab.lib import colors
from reportlab.lib.enums import TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, StyleSheet1
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import (
    Flowable,
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Table,
    TableStyle,
)

from formatzero.compiler.blocks import (
    AnalogyNote,
    Block,
    ChallengeQuestion,
    ContextNote,
    Heading,
    Paragraph as ParagraphBlock,
    StructuredDocument,
    WarningNote,
)
from formatzero.config import CFG

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
PAGE_MARGIN = 45
CONTENT_WIDTH = PAGE_WIDTH - 2 * PAGE_MARGIN
FOOTER_Y = 30

FOOTER_TEXT: str = str(
    CFG.get("footer_text", "FormatZero — Neurociencia aplicada al estudio")
)
AUTHOR_PREFIX = "Ruta de Aprendizaje"
CONTEXT_CAPTION = "¿Por qué importa esto?"
CHALLENGE_CAPTION = "Reto de Memoria Activa"
ANALOGY_LABEL = "Analogía:"
PLACEHOLDER_TEXT = "Cargando conocimiento..."

# DejaVu ships with most Linux distributions and covers the marker glyphs.
_UNICODE_FONT_DIRS = (
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/dejavu",
    "/usr/share/fonts/TTF",
    "/Library/Fonts",
)
_UNICODE_FONT_FILES = {
    "FZ-Sans": "DejaVuSans.ttf",
    "FZ-Sans-Bold": "DejaVuSans-Bold.ttf",
    "FZ-Sans-Oblique": "DejaVuSans-Oblique.ttf",
}


@dataclass(frozen=True)
class GuideFonts:
    regular: str
    bold: str
    italic: str
    analogy_glyph: str
    warning_glyph: str


BUILTIN_FONTS = GuideFonts(
    regular="Helvetica",
    bold="Helvetica-Bold",
    italic="Helvetica-Oblique",
    analogy_glyph="»",
    warning_glyph="!",
)

_FONTS_CACHE: GuideFonts | None = None


def _find_unicode_font_dir() -> str | None:
    for font_dir in _UNICODE_FONT_DIRS:
        if all(
            os.path.isfile(os.path.join(font_dir, fname))
            for fname in _UNICODE_FONT_FILES.values()
        ):
            return font_dir
    return None


def resolve_fonts() -> GuideFonts:
    """Register DejaVu Sans if it is installed, else use Helvetica.

    The result is cached; fonts are registered with ReportLab once per
    process.
    """
    global _FONTS_CACHE
    if _FONTS_CACHE is not None:
        return _FONTS_CACHE

    font_dir = _find_unicode_font_dir()
    if font_dir is None:
        logger.info("DejaVu Sans not found — using built-in Helvetica")
        _FONTS_CACHE = BUILTIN_FONTS
        return _FONTS_CACHE

    try:
        for name, fname in _UNICODE_FONT_FILES.items():
            pdfmetrics.registerFont(TTFont(name, os.path.join(font_dir, fname)))
    except Exception as exc:
        logger.warning(f"Could not register DejaVu Sans from {font_dir}: {exc}")
        _FONTS_CACHE = BUILTIN_FONTS
        return _FONTS_CACHE

    pdfmetrics.registerFontFamily(
        "FZ-Sans",
        normal="FZ-Sans",
        bold="FZ-Sans-Bold",
        italic="FZ-Sans-Oblique",
        boldItalic="FZ-Sans-Bold",
    )
    _FONTS_CACHE = GuideFonts(
        regular="FZ-Sans",
        bold="FZ-Sans-Bold",
        italic="FZ-Sans-Oblique",
        analogy_glyph="➜",
        warning_glyph="⚠",
    )
    return _FONTS_CACHE


# ── Styles ──────────────────────────────────────────────────────────


def build_styles(fonts: GuideFonts) -> StyleSheet1:
    """Return the paragraph styles used by the guide."""
    styles = StyleSheet1()
    styles.add(ParagraphStyle(
        name="GuideTitle",
        fontName=fonts.bold,
        fontSize=26,
        leading=30,
        textColor=colors.HexColor("#111827"),
    ))
    styles.add(ParagraphStyle(
        name="GuideAuthor",
        fontName=fonts.regular,
        fontSize=8,
        leading=10,
        textColor=colors.HexColor("#9CA3AF"),
        spaceBefore=6,
    ))
    styles.add(ParagraphStyle(
        name="SectionTitle",
        fontName=fonts.bold,
        fontSize=13,
        leading=16,
        textColor=colors.HexColor("#4F46E5"),
        spaceBefore=25,
        spaceAfter=12,
    ))
    styles.add(ParagraphStyle(
        name="ContextLabel",
        fontName=fonts.bold,
        fontSize=8,
        leading=10,
        textColor=colors.HexColor("#0369A1"),
        spaceAfter=3,
    ))
    styles.add(ParagraphStyle(
        name="ContextText",
        fontName=fonts.regular,
        fontSize=10,
        leading=14,
        textColor=colors.HexColor("#0C4A6E"),
    ))
    styles.add(ParagraphStyle(
        name="AnalogyText",
        fontName=fonts.italic,
        fontSize=10,
        leading=14,
        textColor=colors.HexColor("#6366F1"),
    ))
    styles.add(ParagraphStyle(
        name="QuestionLabel",
        fontName=fonts.bold,
        fontSize=8,
        leading=10,
        textColor=colors.HexColor("#4338CA"),
        spaceAfter=3,
    ))
    styles.add(ParagraphStyle(
        name="QuestionText",
        fontName=fonts.bold,
        fontSize=10,
        leading=14,
        textColor=colors.HexColor("#4338CA"),
    ))
    styles.add(ParagraphStyle(
        name="BodyText",
        fontName=fonts.regular,
        fontSize=10.5,
        leading=16.8,
        textColor=colors.HexColor("#374151"),
        alignment=TA_JUSTIFY,
        spaceAfter=12,
    ))
    styles.add(ParagraphStyle(
        name="WarningText",
        parent=styles["BodyText"],
        fontName=fonts.bold,
        textColor=colors.HexColor("#B45309"),
    ))
    return styles


def _markup(text: str) -> str:
    """Escape *text* for ReportLab's paragraph mini-markup."""
    return html.escape(text, quote=False)


# ── Block flowables ─────────────────────────────────────────────────


def _callout(
    caption: str,
    body: str,
    styles: StyleSheet1,
    caption_style: str,
    body_style: str,
    box_style: list[tuple],
    space_before: float = 0,
) -> Table:
    table = Table(
        [
            [Paragraph(_markup(caption.upper()), styles[caption_style])],
            [Paragraph(_markup(body), styles[body_style])],
        ],
        colWidths=[CONTENT_WIDTH],
        spaceBefore=space_before,
        spaceAfter=15,
    )
    table.setStyle(TableStyle(box_style + [
        ("LEFTPADDING", (0, 0), (-1, -1), 12),
        ("RIGHTPADDING", (0, 0), (-1, -1), 12),
        ("TOPPADDING", (0, 0), (-1, 0), 12),
        ("TOPPADDING", (0, 1), (-1, 1), 0),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 0),
        ("BOTTOMPADDING", (0, 1), (-1, 1), 12),
    ]))
    return table


def _heading(block: Heading, styles: StyleSheet1, fonts: GuideFonts) -> Flowable:
    return Paragraph(_markup(block.label.upper()), styles["SectionTitle"])


def _context(block: ContextNote, styles: StyleSheet1, fonts: GuideFonts) -> Flowable:
    return _callout(
        CONTEXT_CAPTION,
        block.payload,
        styles,
        "ContextLabel",
        "ContextText",
        [
            ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#F0F9FF")),
            ("LINEBEFORE", (0, 0), (0, -1), 3, colors.HexColor("#0EA5E9")),
        ],
    )


def _analogy(block: AnalogyNote, styles: StyleSheet1, fonts: GuideFonts) -> Flowable:
    text = f"{fonts.analogy_glyph} {ANALOGY_LABEL} {block.payload}"
    table = Table(
        [[Paragraph(_markup(text), styles["AnalogyText"])]],
        colWidths=[CONTENT_WIDTH],
        spaceAfter=15,
    )
    table.setStyle(TableStyle([
        ("LINEBEFORE", (0, 0), (0, -1), 2, colors.HexColor("#E5E7EB")),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    return table


def _challenge(block: ChallengeQuestion, styles: StyleSheet1, fonts: GuideFonts) -> Flowable:
    return _callout(
        CHALLENGE_CAPTION,
        block.payload,
        styles,
        "QuestionLabel",
        "QuestionText",
        [
            ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#F5F3FF")),
            # op, start, stop, weight, colour, cap, dash pattern
            ("BOX", (0, 0), (-1, -1), 1, colors.HexColor("#C7D2FE"), 1, (3, 2)),
        ],
        space_before=10,
    )


def _warning(block: WarningNote, styles: StyleSheet1, fonts: GuideFonts) -> Flowable:
    return Paragraph(
        _markup(f"{fonts.warning_glyph} {block.payload}"), styles["WarningText"]
    )


def _paragraph(block: ParagraphBlock, styles: StyleSheet1, fonts: GuideFonts) -> Flowable:
    return Paragraph(_markup(block.payload), styles["BodyText"])


_RENDERERS = {
    Heading: _heading,
    ContextNote: _context,
    AnalogyNote: _analogy,
    ChallengeQuestion: _challenge,
    WarningNote: _warning,
    ParagraphBlock: _paragraph,
}


def block_flowable(
    block: Block,
    styles: StyleSheet1 | None = None,
    fonts: GuideFonts | None = None,
) -> Flowable:
    """Return the flowable for a single block."""
    fonts = fonts or resolve_fonts()
    styles = styles or build_styles(fonts)
    try:
        render = _RENDERERS[type(block)]
    except KeyError:
        raise TypeError(f"Not a study-guide block: {block!r}") from None
    return render(block, styles, fonts)


def build_story(
    doc: StructuredDocument,
    fonts: GuideFonts | None = None,
) -> list[Flowable]:
    """Build the flat flowable list for *doc*: header, then one per block."""
    fonts = fonts or resolve_fonts()
    styles = build_styles(fonts)

    author_line = f"{AUTHOR_PREFIX} • {doc.author}".upper()
    story: list[Flowable] = [
        Paragraph(_markup(doc.title), styles["GuideTitle"]),
        Paragraph(_markup(author_line), styles["GuideAuthor"]),
        HRFlowable(
            width="100%",
            thickness=1,
            color=colors.HexColor("#E5E7EB"),
            spaceBefore=15,
            spaceAfter=35,
        ),
    ]

    if doc.is_empty:
        story.append(Paragraph(_markup(PLACEHOLDER_TEXT), styles["BodyText"]))
        return story

    for block in doc.blocks:
        story.append(block_flowable(block, styles, fonts))
    return story


def _footer_callback(fonts: GuideFonts, footer_text: str):
    """Return an ``onPage`` callback that draws *footer_text*."""

    def _draw_footer(canvas, document) -> None:
        canvas.saveState()
        canvas.setFont(fonts.regular, 8)
        canvas.setFillColor(colors.HexColor("#D1D5DB"))
        canvas.drawCentredString(PAGE_WIDTH / 2, FOOTER_Y, footer_text)
        canvas.restoreState()

    return _draw_footer


def render_pdf(
    doc: StructuredDocument,
    output: str | os.PathLike | None = None,
    *,
    footer_text: str = FOOTER_TEXT,
) -> str | bytes:
    """Render *doc* to PDF.

    Parameters
    ----------
    doc : StructuredDocument
        The compiled guide.
    output : str | PathLike | None
        File path to write.  If None the PDF is returned as bytes.
    footer_text : str
        Text drawn at the bottom of every page.

    Returns
    -------
    str | bytes
        The written path, or the PDF bytes when *output* is None.
    """
    fonts = resolve_fonts()
    buffer = io.BytesIO()
    template = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN + 15,
        title=doc.title,
        author=doc.author,
        subject=AUTHOR_PREFIX,
    )
    on_page = _footer_callback(fonts, footer_text)
    template.build(build_story(doc, fonts), onFirstPage=on_page, onLaterPages=on_page)
    pdf_bytes = buffer.getvalue()

    logger.info(
        f"Rendered '{doc.title}': {len(doc.blocks)} block(s), "
        f"{len(pdf_bytes):,} bytes"
    )

    if output is None:
        return pdf_bytes

    path = os.fspath(output)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(pdf_bytes)
    logger.info(f"Wrote {path}")
    return path
