import base64
import binascii

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


class GenerationRequest(BaseModel):
    """A single free-text theme submitted by the user."""

    prompt: str = Field(..., description="Work-safety theme or scene to build the DDS around.")


class DDSContent(BaseModel):
    """Structured text of a Daily Safety Dialogue, as returned by the text model."""

    titulo: str
    introducao: str
    caso_real: str
    pontos_chave: list[str]
    como_prevenir: list[str]
    perguntas_reflexao: list[str]
    mensagem_final: str
    nr_relacionada: str


class GeneratedImage(BaseModel):
    """Illustration for a report, embedded as a base64 data URI."""

    data_uri: str

    @field_validator("data_uri")
    @classmethod
    def check_data_uri(cls, v: str) -> str:
        if not v.startswith("data:image/") or ";base64," not in v:
            raise ValueError("image must be a base64 data URI")
        return v

    @classmethod
    def from_base64_png(cls, b64_payload: str) -> "GeneratedImage":
        return cls(data_uri=f"{PNG_DATA_URI_PREFIX}{b64_payload}")

    @property
    def mime_type(self) -> str:
        return self.data_uri[len("data:") : self.data_uri.index(";")]

    def to_bytes(self) -> bytes:
        """Decodes the payload of the data URI."""
        payload = self.data_uri.split(",", 1)[1]
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 image payload: {e}") from e


class CombinedResult(BaseModel):
    """Report text and its illustration, produced together by one generation."""

    report: DDSContent
    image: GeneratedImage
