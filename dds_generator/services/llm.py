import json
import logging
import pathlib
import re
from typing import Any
from uuid import uuid4

import httpx
import jinja2
from openai import AsyncOpenAI
from openai import OpenAIError

from dds_generator.core.config import settings

# Configure module logger
logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when a call to the text or image model fails"""


class JSONParsingError(Exception):
    """Raised when JSON parsing fails"""


# --- Reusable Jinja2 Environment ---
PROMPT_DIR = pathlib.Path(__file__).parent / "prompt_templates"
env = jinja2.Environment(loader=jinja2.FileSystemLoader(PROMPT_DIR), keep_trailing_newline=False)


# ---------------------------------------------------------------
# Gemini client through its OpenAI-compatible endpoint
# ---------------------------------------------------------------
timeout_config = httpx.Timeout(
    settings.LLM_CONNECT_TIMEOUT,
    read=settings.LLM_READ_TIMEOUT,
)

# Placeholder credential when no key is configured; every remote call is then rejected
MISSING_API_KEY = "missing-gemini-api-key"

# Lossless output, labelled image/png downstream
IMAGE_OUTPUT_FORMAT = "png"


def build_client() -> AsyncOpenAI:
    return AsyncOpenAI(
        base_url=settings.llm_base_url,
        api_key=settings.gemini_api_key or MISSING_API_KEY,
        timeout=timeout_config,
        max_retries=0,
    )


client = build_client()


def render_prompt(template_name: str, **context: Any) -> str:
    """Renders one of the prompt templates shipped with the package."""
    try:
        return env.get_template(template_name).render(**context).strip()
    except jinja2.TemplateNotFound:
        logger.error("Template not found: %s", template_name)
        raise LLMError(f"Internal configuration error: Template '{template_name}' not found.") from None


async def call_llm(prompt: str, system_instruction: str, response_schema: dict[str, Any], request_id: str | None = None) -> str:
    """Sends *prompt* to the text model in JSON-schema mode and returns the raw text answer.

    The answer is stripped; an empty string is returned as-is so that the
    caller can decide how to treat a blank response.
    """
    request_id = request_id or str(uuid4())
    logger.info("[%s] Making LLM API call with model: %s", request_id, settings.text_model_id)

    try:
        rsp = await client.chat.completions.create(
            model=settings.text_model_id,
            messages=[
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "dds_content", "schema": response_schema},
            },
        )
    except OpenAIError as e:
        logger.error("[%s] OpenAI API error: %s", request_id, str(e), exc_info=True)
        raise LLMError(f"OpenAI API error: {str(e)}") from e

    if not rsp or not getattr(rsp, "choices", None):
        logger.error("[%s] Invalid response structure from LLM API: %s", request_id, str(rsp))
        raise LLMError(f"Invalid response structure from LLM API: {str(rsp)}")

    message = rsp.choices[0].message
    if message is None:
        logger.error("[%s] Missing 'message' in LLM API response", request_id)
        raise LLMError("Missing 'message' in LLM API response")

    content = (message.content or "").strip()
    logger.debug("[%s] LLM response received, length: %d chars", request_id, len(content))
    return content


async def call_image_model(prompt: str, request_id: str | None = None) -> str | None:
    """Requests exactly one square image for *prompt*.

    Returns the base64 payload of the image, or None when the response
    carries no image.
    """
    request_id = request_id or str(uuid4())
    logger.info("[%s] Making image API call with model: %s", request_id, settings.image_model_id)

    try:
        rsp = await client.images.generate(
            model=settings.image_model_id,
            prompt=prompt,
            n=1,
            size=settings.image_size,
            response_format="b64_json",
            extra_body={"output_format": IMAGE_OUTPUT_FORMAT},
        )
    except OpenAIError as e:
        logger.error("[%s] OpenAI API error: %s", request_id, str(e), exc_info=True)
        raise LLMError(f"OpenAI API error: {str(e)}") from e

    data = getattr(rsp, "data", None) or []
    if not data or not data[0].b64_json:
        logger.warning("[%s] Image API response carried no image payload", request_id)
        return None

    logger.debug("[%s] Image received, %d base64 chars", request_id, len(data[0].b64_json))
    return data[0].b64_json


# ---------------------------------------------------------------
# JSON extractor helper
# ---------------------------------------------------------------
def extract_json(text: str) -> Any:
    """Parses JSON from a model answer, tolerating markdown fences and extraneous text."""
    request_id = str(uuid4())
    logger.debug("[%s] Attempting to parse JSON response, length: %d", request_id, len(text))

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("[%s] Initial JSON parse failed, attempting extraction strategies...", request_id)

    # Strategy 1: Markdown Code Fence Extraction
    match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(1))
            logger.info("[%s] Successfully parsed JSON from markdown code fence.", request_id)
            return result
        except json.JSONDecodeError:
            logger.warning("[%s] Failed to parse JSON from fenced block, trying next strategy...", request_id)

    # Strategy 2: first object in the text
    start_pos = text.find("{")
    if start_pos == -1:
        logger.error("[%s] No JSON object marker found in response", request_id)
        raise JSONParsingError("No JSON object marker found in response")
    try:
        obj, _ = json.JSONDecoder().raw_decode(text, start_pos)
        logger.info("[%s] Successfully parsed JSON using raw_decode.", request_id)
        return obj
    except json.JSONDecodeError as e:
        logger.error("[%s] Failed to parse JSON using raw_decode: %s", request_id, str(e))
    raise JSONParsingError("All strategies to parse JSON from LLM response failed.")
