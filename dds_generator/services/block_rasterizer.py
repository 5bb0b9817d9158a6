"""Draws report blocks into RGBA images for the PDF export.

Sizes below are on-screen pixels; every drawing call multiplies them by the
oversampling factor so the strips stay sharp once shrunk onto the page.
"""

import io
import logging
from functools import lru_cache

from PIL import Image
from PIL import ImageDraw
from PIL import ImageFont

from dds_generator.models.render_models import BlockKind
from dds_generator.models.render_models import RenderedBlock
from dds_generator.models.report_models import GeneratedImage

logger = logging.getLogger(__name__)

# ── PALETTE (export mode: light cards on white paper) ───────────────────────
CARD_BG = (236, 253, 245, 255)
ACCENT = (5, 150, 105, 255)
ACCENT_BAR = (16, 185, 129, 255)
TEXT_PRIMARY = (31, 41, 55, 255)
TEXT_SECONDARY = (55, 65, 81, 255)
TEXT_MUTED = (107, 114, 128, 255)
IMAGE_BG = (0, 0, 0, 255)
IMAGE_BORDER = (4, 120, 87, 255)

# ── METRICS (css px) ────────────────────────────────────────────────────────
PADDING = 24
RADIUS = 12
HEADING_SIZE = 20
HEADING_GAP = 16
ICON_SIZE = 24
ICON_GAP = 12
BODY_SIZE = 16
BODY_LINE = 24
ITEM_GAP = 8
BULLET_INDENT = 22
CLOSING_SIZE = 18
CLOSING_LINE = 28
FOOTNOTE_SIZE = 14
FOOTNOTE_LINE = 20
FOOTNOTE_GAP = 16
ACCENT_BAR_HEIGHT = 4
IMAGE_BORDER_WIDTH = 2

FONT_FILES = {
    "regular": ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf"),
    "bold": ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf"),
    "italic": ("DejaVuSans-Oblique.ttf", "LiberationSans-Italic.ttf", "Arial Italic.ttf"),
}


@lru_cache(maxsize=64)
def load_font(size: int, style: str = "regular") -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Returns a TrueType font of *size* px, falling back to Pillow's bundled font."""
    for name in FONT_FILES[style]:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug("No system TrueType font found for style %s, using Pillow default", style)
    return ImageFont.load_default(size=size)


def wrap_text(text: str, font: ImageFont.ImageFont, max_width: float) -> list[str]:
    """Greedy word wrap of *text* into lines no wider than *max_width* pixels."""
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}".strip()
            if not current or font.getlength(candidate) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


class BlockRasterizer:
    """Rasterises RenderedBlocks at *scale* times their on-screen width."""

    def __init__(self, base_width_px: int = 720, scale: int = 2):
        if scale < 1:
            raise ValueError("scale must be >= 1")
        self.base_width_px = base_width_px
        self.scale = scale

    def _px(self, value: float) -> int:
        return int(round(value * self.scale))

    def _font(self, size: int, style: str = "regular") -> ImageFont.ImageFont:
        return load_font(self._px(size), style)

    @property
    def width(self) -> int:
        return self._px(self.base_width_px)

    def rasterize(self, block: RenderedBlock) -> Image.Image:
        if block.kind is BlockKind.HEADER:
            raise ValueError("Header blocks are written as native PDF text, not rasterised")
        if block.kind is BlockKind.IMAGE:
            return self._rasterize_image(block)
        if block.kind is BlockKind.CLOSING:
            return self._rasterize_closing(block)
        return self._rasterize_section(block)

    # -- image ---------------------------------------------------------------
    def _rasterize_image(self, block: RenderedBlock) -> Image.Image:
        if not block.image_data_uri:
            raise ValueError(f"Image block {block.marker} has no image data")
        side = self.width
        canvas = Image.new("RGBA", (side, side), (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        draw.rounded_rectangle(
            (0, 0, side - 1, side - 1),
            radius=self._px(RADIUS),
            fill=IMAGE_BG,
            outline=IMAGE_BORDER,
            width=self._px(IMAGE_BORDER_WIDTH),
        )

        raw = GeneratedImage(data_uri=block.image_data_uri).to_bytes()
        with Image.open(io.BytesIO(raw)) as src:
            picture = src.convert("RGBA")
        inner = side - 2 * self._px(IMAGE_BORDER_WIDTH)
        # object-contain: keep the aspect ratio inside the square
        ratio = min(inner / picture.width, inner / picture.height)
        fitted = picture.resize(
            (max(1, int(picture.width * ratio)), max(1, int(picture.height * ratio))),
            Image.LANCZOS,
        )
        offset = ((side - fitted.width) // 2, (side - fitted.height) // 2)
        canvas.alpha_composite(fitted, offset)
        return canvas

    # -- sections ------------------------------------------------------------
    def _rasterize_section(self, block: RenderedBlock) -> Image.Image:
        pad = self._px(PADDING)
        text_width = self.width - 2 * pad
        heading_font = self._font(HEADING_SIZE, "bold")
        body_style = "italic" if block.kind is BlockKind.QUOTE else "regular"
        body_font = self._font(BODY_SIZE, body_style)
        line_h = self._px(BODY_LINE)

        # (indent, text, starts_bullet); an empty row is the gap between items
        rows: list[tuple[int, str, bool]] = []
        if block.kind is BlockKind.BULLETS:
            indent = self._px(BULLET_INDENT)
            for item in block.items:
                for i, line in enumerate(wrap_text(item, body_font, text_width - indent)):
                    rows.append((indent, line, i == 0))
                rows.append((0, "", False))
            if rows:
                rows.pop()
        else:
            for paragraph in block.paragraphs:
                rows.extend((0, line, False) for line in wrap_text(paragraph, body_font, text_width))

        heading_h = max(self._px(ICON_SIZE), self._px(HEADING_SIZE * 1.4))
        body_h = sum(self._px(ITEM_GAP) if not text and not bullet else line_h for _, text, bullet in rows)
        height = pad + heading_h + self._px(HEADING_GAP) + body_h + pad

        canvas = Image.new("RGBA", (self.width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        draw.rounded_rectangle((0, 0, self.width - 1, height - 1), radius=self._px(RADIUS), fill=CARD_BG)

        icon = self._px(ICON_SIZE)
        icon_top = pad + (heading_h - icon) // 2
        draw.ellipse((pad, icon_top, pad + icon, icon_top + icon), outline=ACCENT, width=self._px(2))
        draw.text(
            (pad + icon + self._px(ICON_GAP), pad + heading_h // 2),
            block.heading,
            font=heading_font,
            fill=TEXT_PRIMARY,
            anchor="lm",
        )

        y = pad + heading_h + self._px(HEADING_GAP)
        bullet_r = self._px(3)
        for indent, text, bullet in rows:
            if not text and not bullet:
                y += self._px(ITEM_GAP)
                continue
            if bullet:
                cy = y + line_h // 2
                cx = pad + self._px(6)
                draw.ellipse((cx - bullet_r, cy - bullet_r, cx + bullet_r, cy + bullet_r), fill=TEXT_SECONDARY)
            draw.text((pad + indent, y + line_h // 2), text, font=body_font, fill=TEXT_SECONDARY, anchor="lm")
            y += line_h
        return canvas

    def _rasterize_closing(self, block: RenderedBlock) -> Image.Image:
        pad = self._px(PADDING)
        text_width = self.width - 2 * pad
        message_font = self._font(CLOSING_SIZE, "bold")
        label_font = self._font(FOOTNOTE_SIZE)
        value_font = self._font(FOOTNOTE_SIZE, "bold")

        message_lines = [line for p in block.paragraphs for line in wrap_text(p, message_font, text_width)]
        message_h = len(message_lines) * self._px(CLOSING_LINE)
        footnote_h = self._px(FOOTNOTE_GAP) + self._px(FOOTNOTE_LINE) if block.footnote_label else 0
        bar = self._px(ACCENT_BAR_HEIGHT)
        height = bar + pad + message_h + footnote_h + pad

        canvas = Image.new("RGBA", (self.width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        draw.rounded_rectangle((0, 0, self.width - 1, height - 1), radius=self._px(RADIUS), fill=CARD_BG)
        draw.rectangle((0, 0, self.width - 1, bar - 1), fill=ACCENT_BAR)

        center_x = self.width // 2
        y = bar + pad
        for line in message_lines:
            draw.text((center_x, y + self._px(CLOSING_LINE) // 2), line, font=message_font, fill=TEXT_PRIMARY, anchor="mm")
            y += self._px(CLOSING_LINE)

        if block.footnote_label:
            y += self._px(FOOTNOTE_GAP)
            label = f"{block.footnote_label} "
            total = label_font.getlength(label) + value_font.getlength(block.footnote_value)
            x = center_x - total / 2
            mid = y + self._px(FOOTNOTE_LINE) // 2
            draw.text((x, mid), label, font=label_font, fill=TEXT_MUTED, anchor="lm")
            draw.text((x + label_font.getlength(label), mid), block.footnote_value, font=value_font, fill=TEXT_MUTED, anchor="lm")
        return canvas
