import base64
import io

import pytest
from PIL import Image

from dds_generator.models.report_models import CombinedResult
from dds_generator.models.report_models import DDSContent
from dds_generator.models.report_models import GeneratedImage


def make_png_b64(color=(255, 0, 0), size=(1, 1)) -> str:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture
def png_b64() -> str:
    return make_png_b64()


@pytest.fixture
def dds_payload() -> dict:
    return {
        "titulo": "Capacete salva vidas hoje",
        "introducao": "Trabalhos em altura exigem atenção redobrada. O capacete protege contra quedas de objetos.",
        "caso_real": (
            "Em uma obra em Campinas, um pedreiro foi atingido por uma ferramenta que caiu do andaime. "
            "Ele usava capacete com jugular e saiu apenas com um susto."
        ),
        "pontos_chave": [
            "Use o capacete durante toda a jornada.",
            "Ajuste a jugular corretamente.",
            "Inspecione o casco antes do uso.",
            "Substitua capacetes danificados.",
        ],
        "como_prevenir": [
            "Isole a área abaixo do andaime.",
            "Amarre as ferramentas.",
            "Faça a inspeção diária dos EPIs.",
        ],
        "perguntas_reflexao": [
            "Você confere seu capacete todos os dias?",
            "Quem já viu algo cair de um andaime?",
            "O que podemos melhorar hoje?",
        ],
        "mensagem_final": "Segurança começa pela cabeça: proteja a sua!",
        "nr_relacionada": "NR-35",
    }


@pytest.fixture
def dds_content(dds_payload) -> DDSContent:
    return DDSContent.model_validate(dds_payload)


@pytest.fixture
def generated_image(png_b64) -> GeneratedImage:
    return GeneratedImage.from_base64_png(png_b64)


@pytest.fixture
def combined_result(dds_content, generated_image) -> CombinedResult:
    return CombinedResult(report=dds_content, image=generated_image)
