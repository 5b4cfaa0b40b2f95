"""
Shared reportlab building blocks for the PDF-family renderers.

Covers paragraph styles, table styling, markup escaping, image flowables
sized to the frame, and a document template that collects table of
contents entries and stamps page numbers.
"""

import io
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Table, TableStyle
from reportlab.platypus.tableofcontents import TableOfContents


BRAND_BLUE = colors.HexColor("#1E3A8A")
BRAND_ORANGE = colors.HexColor("#DD4F26")
LIGHT_GREY = colors.HexColor("#F8F9FA")
GRID_GREY = colors.HexColor("#DEE2E6")

STATUS_COLORS = {
    "excellent": colors.HexColor("#10B981"),
    "good": colors.HexColor("#2563EB"),
    "fair": colors.HexColor("#F59E0B"),
    "poor": colors.HexColor("#EF4444"),
}

# Longest edge, in points, of embedded images per quality tier.
IMAGE_MAX_EDGE = {"low": 4 * inch, "medium": 6 * inch, "high": 9 * inch}

SLIDE_TITLE_STYLE = "SlideTitle"
SECTION_STYLE = "SectionHeader"


def build_styles() -> StyleSheet1:
    """Sample stylesheet plus the custom styles the renderers use."""
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="DeckTitle",
        parent=styles["Title"],
        fontSize=28,
        leading=34,
        textColor=BRAND_BLUE,
        spaceAfter=24,
    ))
    styles.add(ParagraphStyle(
        name=SLIDE_TITLE_STYLE,
        parent=styles["Heading1"],
        fontSize=22,
        leading=26,
        textColor=BRAND_BLUE,
        spaceAfter=18,
    ))
    styles.add(ParagraphStyle(
        name=SECTION_STYLE,
        parent=styles["Heading2"],
        fontSize=14,
        spaceAfter=10,
        spaceBefore=16,
        textColor=BRAND_BLUE,
    ))
    styles.add(ParagraphStyle(
        name="Small",
        parent=styles["Normal"],
        fontSize=8,
        textColor=colors.grey,
    ))
    styles.add(ParagraphStyle(
        name="TOCLevel0",
        parent=styles["Normal"],
        fontSize=11,
        leading=16,
        leftIndent=12,
    ))
    return styles


def escape_markup(text: Optional[str]) -> str:
    """Escape text for reportlab's paragraph markup."""
    if not text:
        return ""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def clean_markdown(text: Optional[str]) -> str:
    """Strip common Markdown syntax, leaving readable plain text."""
    if not text:
        return ""
    text = re.sub(r"#{1,6}\s+", "", text)
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)
    text = re.sub(r"\[(.*?)\]\(.*?\)", r"\1", text)
    text = re.sub(r"`(.*?)`", r"\1", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def text_paragraphs(text: Optional[str], style: ParagraphStyle) -> List[Paragraph]:
    """Split plain text into escaped paragraphs, keeping single line breaks."""
    paragraphs = []
    for block in clean_markdown(text).split("\n\n"):
        if block.strip():
            paragraphs.append(Paragraph(escape_markup(block.strip()).replace("\n", "<br/>"), style))
    return paragraphs


def styled_table(
    rows: Sequence[Sequence[str]],
    col_widths: Optional[Sequence[float]] = None,
    header_color=BRAND_BLUE,
    font_size: int = 10,
) -> Table:
    """A grid table with a colored header row and striped body."""
    table = Table([list(row) for row in rows], colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), header_color),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), font_size),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, GRID_GREY),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, LIGHT_GREY]),
    ]))
    return table


def image_flowable(content: bytes, max_width: float, max_height: float, quality: str = "medium") -> Image:
    """Scale image bytes to fit the frame and the quality tier's edge limit."""
    reader = ImageReader(io.BytesIO(content))
    width, height = reader.getSize()
    edge = IMAGE_MAX_EDGE.get(quality, IMAGE_MAX_EDGE["medium"])
    scale = min(max_width / width, max_height / height, edge / max(width, height))
    return Image(io.BytesIO(content), width=width * scale, height=height * scale)


def new_table_of_contents(styles: StyleSheet1) -> TableOfContents:
    toc = TableOfContents()
    toc.levelStyles = [styles["TOCLevel0"]]
    toc.dotsMinLevel = 0
    return toc


class NumberedDocTemplate(SimpleDocTemplate):
    """SimpleDocTemplate that feeds slide headings into the table of contents."""

    toc_style_name = SLIDE_TITLE_STYLE

    def afterFlowable(self, flowable):
        if isinstance(flowable, Paragraph) and flowable.style.name == self.toc_style_name:
            self.notify("TOCEntry", (0, escape_markup(flowable.getPlainText()), self.page))


def page_decorator(footer_text: str):
    """onPage callback drawing a footer rule, label and page number."""
    def decorate(canvas, doc):
        canvas.saveState()
        width, _ = doc.pagesize
        canvas.setStrokeColor(GRID_GREY)
        canvas.line(doc.leftMargin, 0.6 * inch, width - doc.rightMargin, 0.6 * inch)
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.grey)
        canvas.drawString(doc.leftMargin, 0.4 * inch, footer_text)
        canvas.drawRightString(width - doc.rightMargin, 0.4 * inch, f"Page {doc.page}")
        canvas.restoreState()
    return decorate


def new_document(
    buffer: io.BytesIO,
    title: str,
    compression: bool = False,
    slides: bool = False,
    toc_style: str = SLIDE_TITLE_STYLE,
) -> NumberedDocTemplate:
    """Create a document template writing into ``buffer``.

    Slide decks use landscape A4; digests use portrait. Paragraphs in
    ``toc_style`` become table of contents entries.
    """
    doc = NumberedDocTemplate(
        buffer,
        pagesize=landscape(A4) if slides else A4,
        title=title,
        author="sprint-export",
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.9 * inch,
        pageCompression=1 if compression else 0,
        invariant=1,
    )
    doc.toc_style_name = toc_style
    return doc


def footer_label(name: str) -> str:
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return f"{name} | Generated {date}"


def status_color(status: str) -> colors.Color:
    return STATUS_COLORS.get(status, STATUS_COLORS["poor"])


def metric_rows(pairs: Dict[str, str]) -> List[List[str]]:
    return [["Metric", "Value"]] + [[label, value] for label, value in pairs.items()]
