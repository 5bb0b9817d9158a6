import logging
from functools import lru_cache
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Form
from fastapi import HTTPException
from fastapi import Request
from fastapi import status
from fastapi.responses import HTMLResponse
from fastapi.responses import RedirectResponse
from fastapi.responses import Response
from fastapi.responses import StreamingResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from dds_generator.core.exceptions import ExportError
from dds_generator.generation_logic.form_controller import EXAMPLE_PROMPTS
from dds_generator.generation_logic.form_controller import FormController
from dds_generator.generation_logic.form_controller import FormState
from dds_generator.generation_logic.report_export import EXPORT_FAILED_MESSAGE
from dds_generator.generation_logic.report_export import ReportExporter
from dds_generator.models.export_models import ExportedFile
from dds_generator.models.report_models import CombinedResult
from dds_generator.models.report_models import GenerationRequest
from dds_generator.services.pipeline import PipelineService
from dds_generator.services.report_renderer import render_report

# Configure module logger
logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter()
api_router = APIRouter(prefix="/api")


def get_pipeline() -> PipelineService:
    return PipelineService()


@lru_cache
def get_report_exporter() -> ReportExporter:
    """Process-wide exporter, so its busy flag covers every request."""
    return ReportExporter()


def _render_page(
    request: Request,
    state: FormState,
    export_error: str | None = None,
    status_code: int = status.HTTP_200_OK,
) -> HTMLResponse:
    rendered = render_report(state.result.report, state.result.image) if state.result else None
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "state": state,
            "rendered": rendered,
            "result_json": state.result.model_dump_json() if state.result else None,
            "examples": EXAMPLE_PROMPTS,
            "export_error": export_error,
        },
        status_code=status_code,
    )


def _pdf_response(exported: ExportedFile) -> StreamingResponse:
    return StreamingResponse(
        iter([exported.content]),
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


# ---------------------------------------------------------------------------
# Browser form
# ---------------------------------------------------------------------------
@router.get("/", response_class=HTMLResponse, tags=["Form"])
async def index(request: Request) -> HTMLResponse:
    return _render_page(request, FormState())


@router.post("/", response_class=HTMLResponse, tags=["Form"])
async def submit_form(
    request: Request,
    prompt: str = Form(default=""),
    pipeline: PipelineService = Depends(get_pipeline),
) -> HTMLResponse:
    """Runs one generation for the submitted theme and renders the outcome."""
    controller = FormController(pipeline=pipeline)
    controller.set_prompt(prompt)
    state = await controller.submit()
    return _render_page(request, state)


@router.post("/example/{index}", response_class=HTMLResponse, tags=["Form"])
async def use_example(request: Request, index: int) -> HTMLResponse:
    """Fills the prompt with one of the canned suggestions."""
    controller = FormController()
    try:
        controller.use_example(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _render_page(request, controller.state)


@router.post("/export", tags=["Form"], response_model=None)
async def export_form(
    request: Request,
    payload: str = Form(default=""),
    exporter: ReportExporter = Depends(get_report_exporter),
) -> Response:
    """Exports the report carried back by the page; failures come back as an alert on the same page."""
    request_id = str(uuid4())
    try:
        result = CombinedResult.model_validate_json(payload) if payload else None
    except ValidationError:
        logger.warning("[%s] Export form posted an unreadable report payload", request_id)
        result = None

    try:
        exported = await exporter.export(result, request_id=request_id)
    except ExportError:
        state = FormState(result=result)
        return _render_page(request, state, export_error=EXPORT_FAILED_MESSAGE, status_code=500)

    if exported is None:
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    return _pdf_response(exported)


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------
@api_router.post("/generate", response_model=CombinedResult, tags=["API"])
async def generate(
    payload: GenerationRequest,
    pipeline: PipelineService = Depends(get_pipeline),
) -> CombinedResult:
    """Generates the DDS text and its illustration.

    Raises:
        PromptValidationError: blank prompt (422).
        GenerationError: either remote call failed (502).
    """
    request_id = str(uuid4())
    FormController.validate_prompt(payload.prompt)
    logger.info("[%s] /api/generate called, prompt length %d", request_id, len(payload.prompt))
    return await pipeline.generate_content(payload.prompt, request_id=request_id)


@api_router.post("/export", tags=["API"], response_model=None)
async def export(
    payload: CombinedResult,
    exporter: ReportExporter = Depends(get_report_exporter),
) -> Response:
    """Returns the PDF of a previously generated result."""
    request_id = str(uuid4())
    logger.info("[%s] /api/export called for %r", request_id, payload.report.titulo)
    exported = await exporter.export(payload, request_id=request_id)
    if exported is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return _pdf_response(exported)


router.include_router(api_router)
