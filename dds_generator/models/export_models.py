from typing import Literal

from PIL import Image
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

PDF_MEDIA_TYPE = "application/pdf"


class TextItem(BaseModel):
    """Native PDF text; *y* is the baseline of the first line, in mm."""

    kind: Literal["text"] = "text"
    lines: list[str]
    x: float
    y: float
    line_height: float
    font_family: str = "helvetica"
    font_style: str = ""
    font_size: float
    color: tuple[int, int, int] = (0, 0, 0)
    align: Literal["L", "C"] = "C"


class ImageSliceItem(BaseModel):
    """A horizontal strip of a rasterised block, placed at (x, y) with size in mm."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["image"] = "image"
    image: Image.Image
    x: float
    y: float
    width: float
    height: float
    marker: str
    source_top: int
    source_bottom: int


class ExportPage(BaseModel):
    items: list[TextItem | ImageSliceItem] = Field(default_factory=list)

    def slices_of(self, marker: str) -> list[ImageSliceItem]:
        return [item for item in self.items if isinstance(item, ImageSliceItem) and item.marker == marker]


class ExportDocument(BaseModel):
    """Pages of the PDF being exported, before serialisation."""

    page_width: float
    page_height: float
    margin: float
    filename: str
    pages: list[ExportPage] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def current_page(self) -> ExportPage:
        return self.pages[-1]

    def add_page(self) -> ExportPage:
        self.pages.append(ExportPage())
        return self.current_page

    def pages_containing(self, marker: str) -> list[int]:
        """Indexes of the pages holding at least one strip of block *marker*."""
        return [i for i, page in enumerate(self.pages) if page.slices_of(marker)]


class ExportedFile(BaseModel):
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE
    page_count: int
