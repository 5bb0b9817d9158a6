"""Maps a generated DDS onto the block tree drawn on screen and exported to PDF."""

import logging

from dds_generator.models.render_models import HEADER_BLOCK_MARKER
from dds_generator.models.render_models import IMAGE_BLOCK_MARKER
from dds_generator.models.render_models import BlockKind
from dds_generator.models.render_models import RenderedBlock
from dds_generator.models.render_models import RenderedReport
from dds_generator.models.render_models import TitleSize
from dds_generator.models.report_models import DDSContent
from dds_generator.models.report_models import GeneratedImage

logger = logging.getLogger(__name__)

HEADER_SUBTITLE = "Diálogo Diário de Segurança"
REGULATION_LABEL = "Norma Relacionada:"

MEDIUM_TITLE_MIN_LENGTH = 31
SMALL_TITLE_MIN_LENGTH = 46


def title_size(title: str) -> TitleSize:
    """Length bucket of a title: <=30 LARGE, 31-45 MEDIUM, 46+ SMALL."""
    length = len(title)
    if length >= SMALL_TITLE_MIN_LENGTH:
        return TitleSize.SMALL
    if length >= MEDIUM_TITLE_MIN_LENGTH:
        return TitleSize.MEDIUM
    return TitleSize.LARGE


def render_report(report: DDSContent, image: GeneratedImage | None = None) -> RenderedReport:
    """Builds the labelled block tree for *report*, with the image block first when present."""
    image_block = None
    if image is not None:
        image_block = RenderedBlock(
            marker=IMAGE_BLOCK_MARKER,
            kind=BlockKind.IMAGE,
            heading=f"Imagem sobre {report.titulo}",
            image_data_uri=image.data_uri,
        )

    header = RenderedBlock(
        marker=HEADER_BLOCK_MARKER,
        kind=BlockKind.HEADER,
        heading=report.titulo,
        paragraphs=[HEADER_SUBTITLE],
        title_size=title_size(report.titulo),
    )

    sections = [
        RenderedBlock(
            marker="pdf-section-introducao",
            kind=BlockKind.PARAGRAPH,
            heading="Introdução",
            icon="info",
            paragraphs=[report.introducao],
        ),
        RenderedBlock(
            marker="pdf-section-caso-real",
            kind=BlockKind.QUOTE,
            heading="Caso Real para Reflexão",
            icon="clock",
            paragraphs=[f"“{report.caso_real}”"],
        ),
        RenderedBlock(
            marker="pdf-section-pontos-chave",
            kind=BlockKind.BULLETS,
            heading="Pontos-Chave",
            icon="clipboard",
            items=list(report.pontos_chave),
        ),
        RenderedBlock(
            marker="pdf-section-como-prevenir",
            kind=BlockKind.BULLETS,
            heading="Como Prevenir?",
            icon="check",
            items=list(report.como_prevenir),
        ),
        RenderedBlock(
            marker="pdf-section-perguntas",
            kind=BlockKind.BULLETS,
            heading="Perguntas para a Equipe",
            icon="question",
            items=list(report.perguntas_reflexao),
        ),
        RenderedBlock(
            marker="pdf-section-mensagem-final",
            kind=BlockKind.CLOSING,
            paragraphs=[report.mensagem_final],
            footnote_label=REGULATION_LABEL,
            footnote_value=report.nr_relacionada,
        ),
    ]

    rendered = RenderedReport(title=report.titulo, image=image_block, header=header, sections=sections)
    logger.debug("Rendered report %r into %d blocks", report.titulo, len(rendered.blocks))
    return rendered
