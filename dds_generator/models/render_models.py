from enum import Enum

from pydantic import BaseModel

IMAGE_BLOCK_MARKER = "pdf-image-block"
HEADER_BLOCK_MARKER = "pdf-header-block"


class TitleSize(str, Enum):
    """Font-size bucket of the report title, picked from its length."""

    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"

    @property
    def css_class(self) -> str:
        return {"large": "text-3xl", "medium": "text-2xl", "small": "text-xl"}[self.value]

    @property
    def pdf_font_size(self) -> int:
        return {"large": 24, "medium": 20, "small": 18}[self.value]


class BlockKind(str, Enum):
    IMAGE = "image"
    HEADER = "header"
    PARAGRAPH = "paragraph"
    QUOTE = "quote"
    BULLETS = "bullets"
    CLOSING = "closing"


class RenderedBlock(BaseModel):
    """One marked, independently exportable region of the on-screen report."""

    marker: str
    kind: BlockKind
    heading: str = ""
    icon: str = ""
    paragraphs: list[str] = []
    items: list[str] = []
    footnote_label: str = ""
    footnote_value: str = ""
    image_data_uri: str | None = None
    title_size: TitleSize | None = None

    @property
    def is_image(self) -> bool:
        return self.kind is BlockKind.IMAGE

    @property
    def is_header(self) -> bool:
        return self.kind is BlockKind.HEADER


class RenderedReport(BaseModel):
    """Block tree of a report in on-screen order: image, header, sections."""

    title: str
    image: RenderedBlock | None = None
    header: RenderedBlock
    sections: list[RenderedBlock]

    @property
    def blocks(self) -> list[RenderedBlock]:
        ordered = [self.image] if self.image else []
        return ordered + [self.header] + self.sections

    @property
    def body_blocks(self) -> list[RenderedBlock]:
        """Every block except the header, in document order."""
        return [block for block in self.blocks if not block.is_header]
