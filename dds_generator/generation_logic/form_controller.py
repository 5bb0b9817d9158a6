"""State of the DDS form and the submit flow behind it."""

import logging
from uuid import uuid4

from pydantic import BaseModel

from dds_generator.core.exceptions import GenerationError
from dds_generator.core.exceptions import PromptValidationError
from dds_generator.models.report_models import CombinedResult
from dds_generator.services.pipeline import PipelineService

__all__ = ["EXAMPLE_PROMPTS", "FormController", "FormState"]

logger = logging.getLogger(__name__)

EXAMPLE_PROMPTS: tuple[str, ...] = (
    "Trabalhador usando capacete e cinto de segurança em uma viga.",
    "Cientista em laboratório usando óculos de proteção e jaleco.",
    "Eletricista com luvas isolantes consertando fiação elétrica.",
)

EMPTY_PROMPT_MESSAGE = "Por favor, insira um prompt."
GENERATION_FAILED_MESSAGE = "Falha ao gerar o conteúdo. Tente novamente. Detalhes: {details}"


class FormState(BaseModel):
    prompt: str = ""
    is_loading: bool = False
    result: CombinedResult | None = None
    error: str | None = None

    @property
    def can_submit(self) -> bool:
        return not self.is_loading and bool(self.prompt.strip())


class FormController:
    """Owns a FormState and reflects pipeline outcomes into it.

    Only the loading flag guards against overlapping submits; two concurrent
    submits race and the last one to finish wins.
    """

    def __init__(self, pipeline: PipelineService | None = None, state: FormState | None = None):
        self.pipeline = pipeline or PipelineService()
        self.state = state or FormState()

    def set_prompt(self, prompt: str) -> None:
        self.state.prompt = prompt

    def use_example(self, index: int) -> str:
        """Copies one of the canned suggestions into the prompt."""
        if not 0 <= index < len(EXAMPLE_PROMPTS):
            raise IndexError(f"No example prompt at index {index}")
        self.state.prompt = EXAMPLE_PROMPTS[index]
        return self.state.prompt

    @staticmethod
    def validate_prompt(prompt: str) -> str:
        if not prompt.strip():
            raise PromptValidationError(EMPTY_PROMPT_MESSAGE)
        return prompt

    async def submit(self) -> FormState:
        """Runs one generation for the current prompt and returns the updated state."""
        try:
            self.validate_prompt(self.state.prompt)
        except PromptValidationError as e:
            logger.info("Rejected blank prompt")
            self.state.error = str(e)
            return self.state

        request_id = str(uuid4())
        self.state.is_loading = True
        self.state.error = None
        self.state.result = None
        try:
            self.state.result = await self.pipeline.generate_content(self.state.prompt, request_id=request_id)
        except GenerationError as e:
            self.state.error = GENERATION_FAILED_MESSAGE.format(details=str(e))
        finally:
            self.state.is_loading = False
        return self.state
