import json

import pytest
from unittest.mock import AsyncMock

from dds_generator.generation_logic import FormController
from dds_generator.generation_logic import ReportExporter
from dds_generator.models.render_models import TitleSize
from dds_generator.services.block_rasterizer import BlockRasterizer
from dds_generator.services.llm import LLMError
from dds_generator.services.pdf_exporter import PdfExporter
from dds_generator.services.report_renderer import render_report

PROMPT = "Trabalhador usando capacete em andaime"


@pytest.fixture()
def remote_calls(monkeypatch, dds_payload, png_b64):
    """Replaces both Gemini calls with canned answers."""
    text = AsyncMock(return_value=json.dumps(dds_payload, ensure_ascii=False))
    image = AsyncMock(return_value=png_b64)
    monkeypatch.setattr("dds_generator.services.content_service.call_llm", text)
    monkeypatch.setattr("dds_generator.services.content_service.call_image_model", image)
    return text, image


@pytest.mark.asyncio
async def test_generate_then_export(remote_calls, dds_payload):
    text, image = remote_calls
    controller = FormController()
    controller.set_prompt(PROMPT)

    state = await controller.submit()

    assert state.error is None
    assert state.is_loading is False
    assert text.await_count == 1
    assert image.await_count == 1
    assert text.await_args.args[0] == PROMPT
    image_prompt = image.await_args.args[0]
    assert image_prompt.startswith(dds_payload["titulo"])
    assert PROMPT not in image_prompt

    rendered = render_report(state.result.report, state.result.image)
    assert rendered.header.title_size is TitleSize.LARGE
    assert len(rendered.body_blocks) == 7
    assert rendered.body_blocks[0].is_image

    exporter = ReportExporter(
        pdf_exporter=PdfExporter(rasterize=BlockRasterizer(base_width_px=720, scale=2).rasterize, page_height=120)
    )
    exported = await exporter.export(state.result)

    assert exported.filename == "capacetesalvavidashoje.pdf"
    assert exported.content.startswith(b"%PDF-")
    assert exported.page_count >= 2
    assert exporter.is_exporting is False


@pytest.mark.asyncio
async def test_text_rejection_leaves_no_result(remote_calls):
    text, image = remote_calls
    text.side_effect = LLMError("OpenAI API error: 400 API key not valid")
    controller = FormController()
    controller.set_prompt(PROMPT)

    state = await controller.submit()

    assert state.result is None
    assert state.is_loading is False
    assert "API key not valid" in state.error
    assert image.await_count == 0


@pytest.mark.asyncio
async def test_image_rejection_discards_text(remote_calls):
    text, image = remote_calls
    image.return_value = None
    controller = FormController()
    controller.set_prompt(PROMPT)

    state = await controller.submit()

    assert text.await_count == 1
    assert state.result is None
    assert state.is_loading is False
    assert "Nenhuma imagem foi gerada." in state.error
