import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from dds_generator.api.routes import router
from dds_generator.core.config import settings
from dds_generator.core.exceptions import ExportError
from dds_generator.core.exceptions import GenerationError
from dds_generator.core.exceptions import PromptValidationError
from dds_generator.core.logging import setup_logging

setup_logging()

app = FastAPI(title="Gerador de DDS")

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may hold exception instances
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


@app.on_event("startup")
async def startup_event() -> None:
    if not settings.gemini_api_key:
        logger.warning("No GEMINI_API_KEY/API_KEY configured: every generation will be rejected by the API")
    logger.info("Application started, text model %s, image model %s", settings.text_model_id, settings.image_model_id)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.error(f"HTTP exception: {exc.detail} (status: {exc.status_code})")
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error("Request validation failed: %s", exc.errors(), exc_info=False)
    return JSONResponse(
        {"error": "Input validation failed", "details": jsonable_errors(exc)},
        status_code=422,
    )


@app.exception_handler(PromptValidationError)
async def prompt_validation_exception_handler(_request: Request, exc: PromptValidationError) -> JSONResponse:
    logger.info(f"Prompt rejected: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=422)


@app.exception_handler(GenerationError)
async def generation_exception_handler(_request: Request, exc: GenerationError) -> JSONResponse:
    logger.error(f"Generation error: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=502)


@app.exception_handler(ExportError)
async def export_exception_handler(_request: Request, exc: ExportError) -> JSONResponse:
    logger.error(f"Export error: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    logger.info("Health check endpoint called")
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(router)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
