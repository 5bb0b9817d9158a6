"""Handles the export of a generated DDS to a downloadable PDF."""

import asyncio
import logging
from uuid import uuid4

from dds_generator.core.config import settings
from dds_generator.core.exceptions import ExportError
from dds_generator.models.export_models import ExportedFile
from dds_generator.models.report_models import CombinedResult
from dds_generator.services.block_rasterizer import BlockRasterizer
from dds_generator.services.pdf_exporter import PdfExporter
from dds_generator.services.report_renderer import render_report

__all__ = ["EXPORT_FAILED_MESSAGE", "ReportExporter", "build_pdf_exporter"]

logger = logging.getLogger(__name__)

EXPORT_FAILED_MESSAGE = "Ocorreu um erro ao gerar o PDF. Tente novamente."


def build_pdf_exporter() -> PdfExporter:
    """PdfExporter wired to the Pillow rasterizer and the configured page geometry."""
    rasterizer = BlockRasterizer(base_width_px=settings.raster_base_width_px, scale=settings.pdf_oversampling)
    return PdfExporter(
        rasterize=rasterizer.rasterize,
        page_width=settings.pdf_page_width_mm,
        page_height=settings.pdf_page_height_mm,
        margin=settings.pdf_margin_mm,
        block_gap=settings.pdf_block_gap_mm,
        image_width_ratio=settings.pdf_image_width_ratio,
        default_filename=settings.pdf_default_filename,
    )


class ReportExporter:
    """Runs one export at a time per instance; ``is_exporting`` is True only while a PDF is being built."""

    def __init__(self, pdf_exporter: PdfExporter | None = None):
        self.pdf_exporter = pdf_exporter or build_pdf_exporter()
        self.is_exporting = False

    async def export(self, result: CombinedResult | None, request_id: str | None = None) -> ExportedFile | None:
        """Builds the PDF for *result*.

        Returns None when there is nothing to export or an export is already
        running. Any failure while rasterising or assembling is raised as
        ExportError.
        """
        request_id = request_id or str(uuid4())
        if self.is_exporting:
            logger.warning("[%s] Export requested while another export is running; ignored", request_id)
            return None

        self.is_exporting = True
        try:
            if result is None:
                logger.info("[%s] Nothing to export: no report loaded", request_id)
                return None

            rendered = render_report(result.report, result.image)
            if not rendered.body_blocks:
                logger.info("[%s] Nothing to export: report has no blocks", request_id)
                return None

            logger.info("[%s] Exporting %r to PDF", request_id, rendered.title)
            document, content = await asyncio.to_thread(self.pdf_exporter.export, rendered, request_id)
            logger.info("[%s] PDF ready (%d bytes, %d pages)", request_id, len(content), document.page_count)
            return ExportedFile(filename=document.filename, content=content, page_count=document.page_count)
        except ExportError:
            logger.exception("[%s] PDF export failed", request_id)
            raise
        except Exception as e:
            logger.exception("[%s] PDF export failed with unexpected error", request_id)
            raise ExportError(f"{EXPORT_FAILED_MESSAGE} Detalhes: {e}") from e
        finally:
            self.is_exporting = False
