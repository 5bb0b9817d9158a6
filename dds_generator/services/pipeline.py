from __future__ import annotations

import logging
from uuid import uuid4

from dds_generator.core.exceptions import ContentGenerationError
from dds_generator.core.exceptions import GenerationError
from dds_generator.models.report_models import CombinedResult
from dds_generator.services.content_service import ContentService
from dds_generator.services.llm import LLMError

logger = logging.getLogger(__name__)

GENERATION_ERROR_PREFIX = "Falha na API do Gemini"


class PipelineService:
    """Runs the text step, then the image step seeded by the generated title."""

    def __init__(self, content_service: ContentService | None = None):
        self.content_service = content_service or ContentService()

    async def generate_content(self, prompt: str, request_id: str | None = None) -> CombinedResult:
        """Returns the report and its image, or raises a single GenerationError.

        The image prompt is derived from the generated title rather than from
        *prompt*, so the two calls always run one after the other.
        """
        request_id = request_id or str(uuid4())
        logger.info("[%s] Starting pipeline run with prompt length %d", request_id, len(prompt))
        try:
            report = await self.content_service.generate_report(request_id, prompt)
            image = await self.content_service.generate_image(request_id, report.titulo)
        except (ContentGenerationError, LLMError) as e:
            logger.error("[%s] Pipeline run failed: %s", request_id, str(e))
            raise GenerationError(f"{GENERATION_ERROR_PREFIX}: {e}") from e
        except Exception as e:
            logger.exception("[%s] Pipeline run failed with unexpected error", request_id)
            raise GenerationError(f"{GENERATION_ERROR_PREFIX}: {e}") from e

        logger.info("[%s] Pipeline completed successfully", request_id)
        return CombinedResult(report=report, image=image)
