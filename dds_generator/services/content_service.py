from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from dds_generator.core.exceptions import EmptyResponseError
from dds_generator.core.exceptions import NoImageReturnedError
from dds_generator.core.exceptions import SchemaViolationError
from dds_generator.models.report_models import DDSContent
from dds_generator.models.report_models import GeneratedImage
from dds_generator.services.llm import JSONParsingError
from dds_generator.services.llm import call_image_model
from dds_generator.services.llm import call_llm
from dds_generator.services.llm import extract_json
from dds_generator.services.llm import render_prompt

logger = logging.getLogger(__name__)

KEY_POINTS_COUNT = 4
PREVENTION_COUNT = 3
QUESTIONS_COUNT = 3


def _string_list(description: str) -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


# JSON schema sent with every text request; mirrors DDSContent.
DDS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "titulo": {
            "type": "string",
            "description": "Título chamativo para um Diálogo Diário de Segurança (DDS) com no máximo 60 caracteres.",
        },
        "introducao": {
            "type": "string",
            "description": "Parágrafo inicial de 2-3 frases contextualizando o tema.",
        },
        "caso_real": {
            "type": "string",
            "description": (
                "Descrição de um caso real ou situação prática e realista no Brasil sobre o tema (4-5 frases). "
                'Não use a expressão "Lembro de um caso...".'
            ),
        },
        "pontos_chave": _string_list(f"Lista com {KEY_POINTS_COUNT} pontos chave importantes sobre o tema."),
        "como_prevenir": _string_list(f"Lista com {PREVENTION_COUNT} ações práticas e diretas para prevenir o risco."),
        "perguntas_reflexao": _string_list(
            f"Lista com {QUESTIONS_COUNT} perguntas que engajam a equipe e promovem discussão."
        ),
        "mensagem_final": {
            "type": "string",
            "description": "Uma frase final motivacional ou um chamado à ação impactante.",
        },
        "nr_relacionada": {
            "type": "string",
            "description": 'A Norma Regulamentadora (NR) aplicável ao tema (ex: NR-35) ou "Geral" se não houver uma específica.',
        },
    },
    "required": list(DDSContent.model_fields),
}


def build_image_prompt(title: str) -> str:
    """Appends the fixed 3D-animation style descriptor to *title*."""
    return render_prompt("image_prompt.jinja2", title=title)


class ContentService:
    """Issues the two remote calls behind a DDS: the structured text and the illustration."""

    async def generate_report(self, request_id: str, prompt: str) -> DDSContent:
        """Generates the DDS text for *prompt* and validates it against the schema."""
        logger.info("[%s] Generating DDS text", request_id)
        system_instruction = render_prompt("system_instruction.jinja2")

        raw = await call_llm(prompt, system_instruction, DDS_RESPONSE_SCHEMA, request_id=request_id)
        if not raw.strip():
            logger.error("[%s] Text model returned an empty response", request_id)
            raise EmptyResponseError("A resposta da API de texto estava vazia.")

        try:
            data = extract_json(raw)
            content = DDSContent.model_validate(data)
        except (JSONParsingError, ValidationError) as e:
            logger.error("[%s] Text response does not match the DDS schema: %s", request_id, str(e))
            raise SchemaViolationError(f"Resposta da API de texto inválida: {e}") from e

        logger.info("[%s] DDS text generated, title: %r", request_id, content.titulo)
        return content

    async def generate_image(self, request_id: str, title: str) -> GeneratedImage:
        """Generates the illustration for a report title."""
        image_prompt = build_image_prompt(title)
        logger.info("[%s] Generating image", request_id)
        logger.debug("[%s] Image prompt: %s", request_id, image_prompt)

        b64_payload = await call_image_model(image_prompt, request_id=request_id)
        if not b64_payload:
            raise NoImageReturnedError("Nenhuma imagem foi gerada.")
        return GeneratedImage.from_base64_png(b64_payload)
