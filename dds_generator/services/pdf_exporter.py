"""Turns a rendered report into a paginated PDF.

The header is written as native PDF text. Every other block is rasterised and
placed as one or more horizontal strips, so a block only ever breaks where
this module decides to slice it.
"""

import logging
import re
from collections.abc import Callable
from uuid import uuid4

from fpdf import FPDF
from PIL import Image

from dds_generator.core.exceptions import ExportError
from dds_generator.models.export_models import ExportDocument
from dds_generator.models.export_models import ImageSliceItem
from dds_generator.models.export_models import TextItem
from dds_generator.models.render_models import RenderedBlock
from dds_generator.models.render_models import RenderedReport
from dds_generator.models.render_models import TitleSize

logger = logging.getLogger(__name__)

PT_TO_MM = 25.4 / 72
LINE_HEIGHT_FACTOR = 1.15

SUBTITLE_FONT_SIZE = 10
SUBTITLE_COLOR = "#059669"
SUBTITLE_ADVANCE_MM = 6
TITLE_COLOR = "#1f2937"
TITLE_GAP_MM = 8
# Remaining space below this is treated as a full page
MIN_SLICE_SPACE_MM = 1

PDF_EXTENSION = ".pdf"

_PDF_CHAR_REPLACEMENTS = {
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
    "…": "...",
}


def safe_filename(title: str, default: str) -> str:
    """Keeps only the ASCII letters and digits of *title*, lowercased; *default* if nothing is left."""
    return re.sub(r"[^a-zA-Z0-9]", "", title).lower() or default


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def pdf_safe_text(text: str) -> str:
    """Maps *text* onto latin-1, the encoding of the core PDF fonts."""
    for src, dst in _PDF_CHAR_REPLACEMENTS.items():
        text = text.replace(src, dst)
    return text.encode("latin-1", "replace").decode("latin-1")


def _break_word(pdf: FPDF, word: str, max_width: float) -> list[str]:
    pieces: list[str] = []
    current = ""
    for char in word:
        if current and pdf.get_string_width(current + char) > max_width:
            pieces.append(current)
            current = char
        else:
            current += char
    pieces.append(current)
    return pieces


def split_text_to_width(pdf: FPDF, text: str, max_width: float) -> list[str]:
    """Greedy word wrap using the current font of *pdf*.

    A word wider than *max_width* on its own is broken between characters.
    """
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if pdf.get_string_width(candidate) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        *full, current = _break_word(pdf, word, max_width)
        lines.extend(full)
    lines.append(current)
    return lines


class PdfExporter:
    """Lays out a RenderedReport on fixed-size pages and serialises it with fpdf2.

    Args:
        rasterize: Callable turning a block into an image; its pixel size only
            sets the aspect ratio, the strip is scaled to the block width.
        page_width, page_height, margin: Page geometry in mm.
        block_gap: Vertical space after each block, in mm.
        image_width_ratio: Share of the content width used by the image block.
        default_filename: Stem used when the title yields no usable characters.
    """

    def __init__(
        self,
        rasterize: Callable[[RenderedBlock], Image.Image],
        page_width: float = 210.0,
        page_height: float = 297.0,
        margin: float = 10.0,
        block_gap: float = 5.0,
        image_width_ratio: float = 0.8,
        default_filename: str = "DDS_Seguranca",
    ):
        if page_height - 2 * margin < MIN_SLICE_SPACE_MM or page_width - 2 * margin <= 0:
            raise ValueError("Page is too small for the configured margin")
        self.rasterize = rasterize
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.block_gap = block_gap
        self.image_width_ratio = image_width_ratio
        self.default_filename = default_filename

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.page_height - 2 * self.margin

    def _new_pdf(self) -> FPDF:
        pdf = FPDF(orientation="P", unit="mm", format=(self.page_width, self.page_height))
        pdf.set_auto_page_break(auto=False)
        pdf.set_margins(self.margin, self.margin, self.margin)
        return pdf

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _place_header(self, document: ExportDocument, header: RenderedBlock, cursor: float) -> float:
        measure = self._new_pdf()
        subtitle = pdf_safe_text(header.paragraphs[0] if header.paragraphs else "")
        title = pdf_safe_text(header.heading)

        document.current_page.items.append(
            TextItem(
                lines=[subtitle],
                x=self.page_width / 2,
                y=cursor,
                line_height=SUBTITLE_FONT_SIZE * PT_TO_MM * LINE_HEIGHT_FACTOR,
                font_style="B",
                font_size=SUBTITLE_FONT_SIZE,
                color=hex_to_rgb(SUBTITLE_COLOR),
            )
        )
        cursor += SUBTITLE_ADVANCE_MM

        font_size = (header.title_size or TitleSize.LARGE).pdf_font_size
        measure.set_font("helvetica", "B", font_size)
        title_lines = split_text_to_width(measure, title, self.content_width)
        line_height = font_size * PT_TO_MM * LINE_HEIGHT_FACTOR
        document.current_page.items.append(
            TextItem(
                lines=title_lines,
                x=self.page_width / 2,
                y=cursor,
                line_height=line_height,
                font_style="B",
                font_size=font_size,
                color=hex_to_rgb(TITLE_COLOR),
            )
        )
        return cursor + len(title_lines) * line_height + TITLE_GAP_MM

    def _place_block(self, document: ExportDocument, block: RenderedBlock, canvas: Image.Image, cursor: float) -> float:
        block_width = self.content_width * self.image_width_ratio if block.is_image else self.content_width
        block_x = (self.page_width - block_width) / 2 if block.is_image else self.margin
        px_width, px_height = canvas.size
        if px_width < 1 or px_height < 1:
            raise ExportError(f"Block {block.marker} rasterised to an empty image")

        total_height = px_height * block_width / px_width
        bottom = self.page_height - self.margin

        # Move a block that would fit whole on a fresh page instead of splitting it.
        # Taller blocks start slicing right where the cursor is.
        if cursor > self.margin and cursor + total_height > bottom and total_height <= self.content_height:
            document.add_page()
            cursor = self.margin

        source_y = 0
        while source_y < px_height:
            remaining_mm = bottom - cursor
            if remaining_mm < MIN_SLICE_SPACE_MM:
                document.add_page()
                cursor = self.margin
                continue

            fitting_px = int(remaining_mm * px_width / block_width)
            slice_px = min(px_height - source_y, fitting_px)
            if slice_px < 1:
                if cursor <= self.margin:
                    raise ExportError(f"Block {block.marker} cannot fit a single pixel row on a page")
                document.add_page()
                cursor = self.margin
                continue

            strip = canvas.crop((0, source_y, px_width, source_y + slice_px))
            slice_height = slice_px * block_width / px_width
            document.current_page.items.append(
                ImageSliceItem(
                    image=strip,
                    x=block_x,
                    y=cursor,
                    width=block_width,
                    height=slice_height,
                    marker=block.marker,
                    source_top=source_y,
                    source_bottom=source_y + slice_px,
                )
            )
            source_y += slice_px
            cursor += slice_height

        return cursor + self.block_gap

    def build_document(self, rendered: RenderedReport, request_id: str | None = None) -> ExportDocument:
        """Computes every page of the export without writing the PDF."""
        request_id = request_id or str(uuid4())
        document = ExportDocument(
            page_width=self.page_width,
            page_height=self.page_height,
            margin=self.margin,
            filename=f"{safe_filename(rendered.title, self.default_filename)}{PDF_EXTENSION}",
        )
        document.add_page()
        cursor = self._place_header(document, rendered.header, self.margin)

        for block in rendered.body_blocks:
            canvas = self.rasterize(block)
            logger.debug("[%s] Rasterised %s to %dx%d px", request_id, block.marker, *canvas.size)
            cursor = self._place_block(document, block, canvas, cursor)

        logger.info("[%s] Laid out %d blocks on %d pages", request_id, len(rendered.body_blocks), document.page_count)
        return document

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def write_pdf(self, document: ExportDocument) -> bytes:
        pdf = self._new_pdf()
        for page in document.pages:
            pdf.add_page()
            for item in page.items:
                if isinstance(item, TextItem):
                    pdf.set_font(item.font_family, item.font_style, item.font_size)
                    pdf.set_text_color(*item.color)
                    for i, line in enumerate(item.lines):
                        x = item.x - pdf.get_string_width(line) / 2 if item.align == "C" else item.x
                        pdf.text(x, item.y + i * item.line_height, line)
                else:
                    pdf.image(item.image, x=item.x, y=item.y, w=item.width, h=item.height)
        return bytes(pdf.output())

    def export(self, rendered: RenderedReport, request_id: str | None = None) -> tuple[ExportDocument, bytes]:
        document = self.build_document(rendered, request_id=request_id)
        return document, self.write_pdf(document)
