import pytest
from fastapi import status
from fastapi.testclient import TestClient

from dds_generator.api import routes as routes_module
from dds_generator.core.exceptions import ExportError
from dds_generator.core.exceptions import GenerationError
from dds_generator.generation_logic.form_controller import EXAMPLE_PROMPTS
from dds_generator.main import app

# ---------------------------------------------------------------------------
# Helper dummy implementations
# ---------------------------------------------------------------------------


class DummyPipeline:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.prompts = []

    async def generate_content(self, prompt, request_id=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.result


class FailingExporter:
    is_exporting = False

    async def export(self, result, request_id=None):
        raise ExportError("rasterisation failed")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_pipeline(pipeline):
    app.dependency_overrides[routes_module.get_pipeline] = lambda: pipeline
    return pipeline


# ---------------------------------------------------------------------------
# Form
# ---------------------------------------------------------------------------


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == status.HTTP_200_OK
    assert resp.json() == {"status": "ok"}


def test_index_renders_form(client):
    resp = client.get("/")
    assert resp.status_code == status.HTTP_200_OK
    assert resp.headers["content-type"].startswith("text/html")
    assert 'name="prompt"' in resp.text
    for example in EXAMPLE_PROMPTS:
        assert example in resp.text
    assert 'id="export-form"' not in resp.text


def test_blank_prompt_makes_no_call(client):
    pipeline = _use_pipeline(DummyPipeline())
    resp = client.post("/", data={"prompt": "   "})
    assert resp.status_code == status.HTTP_200_OK
    assert "Por favor, insira um prompt." in resp.text
    assert pipeline.prompts == []


def test_submit_renders_report_blocks(client, combined_result):
    pipeline = _use_pipeline(DummyPipeline(result=combined_result))
    resp = client.post("/", data={"prompt": "Trabalhador usando capacete em andaime"})

    assert resp.status_code == status.HTTP_200_OK
    assert pipeline.prompts == ["Trabalhador usando capacete em andaime"]
    assert combined_result.report.titulo in resp.text
    assert 'data-pdf-block="pdf-image-block"' in resp.text
    assert resp.text.count("data-pdf-block=") == 8
    assert "text-3xl font-extrabold" in resp.text
    assert 'id="export-form"' in resp.text


def test_submit_failure_shows_error(client):
    _use_pipeline(DummyPipeline(error=GenerationError("Falha na API do Gemini: quota")))
    resp = client.post("/", data={"prompt": "capacete"})
    assert resp.status_code == status.HTTP_200_OK
    assert "Ocorreu um Erro" in resp.text
    assert "quota" in resp.text
    assert "data-pdf-block=" not in resp.text


def test_example_fills_prompt(client):
    resp = client.post("/example/1")
    assert resp.status_code == status.HTTP_200_OK
    assert f">{EXAMPLE_PROMPTS[1]}</textarea>" in resp.text


def test_unknown_example(client):
    resp = client.post("/example/7")
    assert resp.status_code == status.HTTP_404_NOT_FOUND


def test_export_form_returns_pdf(client, combined_result):
    resp = client.post("/export", data={"payload": combined_result.model_dump_json()})
    assert resp.status_code == status.HTTP_200_OK
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="capacetesalvavidashoje.pdf"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF-")


@pytest.mark.parametrize("payload", ["", "not json"])
def test_export_form_without_report_is_noop(client, payload):
    resp = client.post("/export", data={"payload": payload}, follow_redirects=False)
    assert resp.status_code == status.HTTP_303_SEE_OTHER
    assert resp.headers["location"] == "/"


def test_export_is_ignored_while_another_request_exports(client, combined_result):
    exporter = routes_module.get_report_exporter()
    assert routes_module.get_report_exporter() is exporter

    exporter.is_exporting = True
    try:
        form = client.post("/export", data={"payload": combined_result.model_dump_json()}, follow_redirects=False)
        api = client.post("/api/export", json=combined_result.model_dump())
    finally:
        exporter.is_exporting = False

    assert form.status_code == status.HTTP_303_SEE_OTHER
    assert api.status_code == status.HTTP_204_NO_CONTENT


def test_export_form_failure_alerts_and_keeps_report(client, combined_result):
    app.dependency_overrides[routes_module.get_report_exporter] = FailingExporter
    resp = client.post("/export", data={"payload": combined_result.model_dump_json()})
    assert resp.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "alert(" in resp.text
    assert combined_result.report.titulo in resp.text


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------


def test_api_generate_success(client, combined_result):
    _use_pipeline(DummyPipeline(result=combined_result))
    resp = client.post("/api/generate", json={"prompt": "capacete"})
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["report"]["titulo"] == combined_result.report.titulo
    assert body["image"]["data_uri"].startswith("data:image/png;base64,")


def test_api_generate_blank_prompt(client):
    pipeline = _use_pipeline(DummyPipeline())
    resp = client.post("/api/generate", json={"prompt": " "})
    assert resp.status_code == 422
    assert resp.json() == {"error": "Por favor, insira um prompt."}
    assert pipeline.prompts == []


def test_api_generate_missing_field(client):
    resp = client.post("/api/generate", json={})
    assert resp.status_code == 422
    assert resp.json()["error"] == "Input validation failed"


def test_api_generate_failure(client):
    _use_pipeline(DummyPipeline(error=GenerationError("Falha na API do Gemini: boom")))
    resp = client.post("/api/generate", json={"prompt": "capacete"})
    assert resp.status_code == 502
    assert resp.json() == {"error": "Falha na API do Gemini: boom"}


def test_api_export(client, combined_result):
    resp = client.post("/api/export", json=combined_result.model_dump())
    assert resp.status_code == status.HTTP_200_OK
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF-")


def test_api_export_failure(client, combined_result):
    app.dependency_overrides[routes_module.get_report_exporter] = FailingExporter
    resp = client.post("/api/export", json=combined_result.model_dump())
    assert resp.status_code == 500
    assert "rasterisation failed" in resp.json()["error"]
