import pytest

from dds_generator.models.render_models import BlockKind
from dds_generator.models.render_models import RenderedBlock
from dds_generator.services.block_rasterizer import BlockRasterizer
from dds_generator.services.block_rasterizer import wrap_text
from dds_generator.services.report_renderer import render_report


class FixedWidthFont:
    """Every character is 10 px wide."""

    def getlength(self, text):
        return len(text) * 10


def test_wrap_text_greedy():
    lines = wrap_text("aa bb cc dd", FixedWidthFont(), max_width=50)
    assert lines == ["aa bb", "cc dd"]


def test_wrap_text_keeps_long_word_on_its_own_line():
    assert wrap_text("abcdefghij x", FixedWidthFont(), max_width=30) == ["abcdefghij", "x"]


def test_section_block_is_oversampled_and_transparent(dds_content):
    rasterizer = BlockRasterizer(base_width_px=720, scale=2)
    section = render_report(dds_content).sections[0]

    image = rasterizer.rasterize(section)

    assert image.mode == "RGBA"
    assert image.width == 1440
    assert image.height > 0
    # rounded corner leaves the background transparent
    assert image.getpixel((0, 0))[3] == 0


def test_more_items_make_taller_blocks():
    rasterizer = BlockRasterizer(base_width_px=400, scale=1)
    short = RenderedBlock(marker="a", kind=BlockKind.BULLETS, heading="H", items=["um"])
    tall = RenderedBlock(marker="b", kind=BlockKind.BULLETS, heading="H", items=["um", "dois", "três", "quatro"])
    assert rasterizer.rasterize(tall).height > rasterizer.rasterize(short).height


def test_closing_block(dds_content):
    rasterizer = BlockRasterizer(base_width_px=600, scale=2)
    closing = render_report(dds_content).sections[-1]
    image = rasterizer.rasterize(closing)
    assert image.size[0] == 1200
    assert image.height > 0


def test_image_block_is_square_and_contains_picture(dds_content, generated_image):
    rasterizer = BlockRasterizer(base_width_px=300, scale=2)
    block = render_report(dds_content, generated_image).image

    image = rasterizer.rasterize(block)

    assert image.size == (600, 600)
    # the 1x1 red PNG fills the square
    assert image.getpixel((300, 300)) == (255, 0, 0, 255)


def test_header_is_not_rasterised(dds_content):
    with pytest.raises(ValueError):
        BlockRasterizer().rasterize(render_report(dds_content).header)


def test_invalid_scale():
    with pytest.raises(ValueError):
        BlockRasterizer(scale=0)
