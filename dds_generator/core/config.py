"""Application configuration settings.

This module defines the application-wide settings using Pydantic's BaseSettings.
It allows for loading configurations from environment variables and .env files,
providing type validation and default values.
"""

import re

from pydantic import AliasChoices
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

# Default list of CORS allowed origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "https://localhost:3000",
    "https://localhost:8000",
    "http://0.0.0.0:8000",
]

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class Settings(BaseSettings):
    """Manages application settings, loading them from environment variables or an .env file.

    Attributes:
        gemini_api_key: Credential for the Gemini API (``GEMINI_API_KEY`` or ``API_KEY``).
        llm_base_url: Base URL of the OpenAI-compatible Gemini endpoint.
        text_model_id: Model used for the structured DDS text.
        image_model_id: Model used for the illustration.
        image_size: Requested image size, ``NxN``; non-square sizes are rejected.
        cors_allowed_origins: List of allowed origins for CORS.
        LLM_CONNECT_TIMEOUT: LLM client connect timeout in seconds.
        LLM_READ_TIMEOUT: LLM client read timeout in seconds.
        pdf_page_width_mm: Page width of the exported PDF.
        pdf_page_height_mm: Page height of the exported PDF.
        pdf_margin_mm: Uniform margin on every side of the page.
        pdf_oversampling: Raster scale factor applied before blocks are shrunk into the PDF.
        pdf_block_gap_mm: Vertical gap after each exported block.
        pdf_image_width_ratio: Fraction of the content width used by the image block.
        pdf_default_filename: File name used when the title has no usable characters.
        raster_base_width_px: On-screen width of a report block, before oversampling.
    """

    gemini_api_key: str | None = Field(default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"))
    llm_base_url: str = Field(default=GEMINI_OPENAI_BASE_URL)
    text_model_id: str = Field(default="gemini-2.5-flash")
    image_model_id: str = Field(default="imagen-4.0-generate-001")
    image_size: str = Field(default="1024x1024")

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),  # Use a copy of the default list
    )

    LLM_CONNECT_TIMEOUT: float = Field(default=10.0, description="LLM client connect timeout in seconds.")
    LLM_READ_TIMEOUT: float = Field(default=180.0, description="LLM client read timeout in seconds.")

    # A4 portrait, millimetres
    pdf_page_width_mm: float = Field(default=210.0)
    pdf_page_height_mm: float = Field(default=297.0)
    pdf_margin_mm: float = Field(default=10.0)
    pdf_oversampling: int = Field(default=2)
    pdf_block_gap_mm: float = Field(default=5.0)
    pdf_image_width_ratio: float = Field(default=0.8)
    pdf_default_filename: str = Field(default="DDS_Seguranca")

    raster_base_width_px: int = Field(default=720)

    model_config = {
        "env_file": ".env",
        "protected_namespaces": ("settings_",),
        "env_prefix": "",  # No prefix for environment variables
        "extra": "ignore",  # Ignore extra fields
    }

    @field_validator("cors_allowed_origins", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Assembles the list of CORS allowed origins.

        If 'v' is a string, it splits it by commas. If 'v' is already a list,
        it's used directly. Otherwise, returns the default list of origins.
        """
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return list(DEFAULT_CORS_ORIGINS)

    @field_validator("image_size")
    @classmethod
    def check_square_size(cls, v: str) -> str:
        if not re.fullmatch(r"(\d+)x\1", v):
            raise ValueError("image_size must be square, e.g. 1024x1024")
        return v

    @field_validator("pdf_image_width_ratio")
    @classmethod
    def check_ratio(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("pdf_image_width_ratio must be in (0, 1]")
        return v


settings = Settings()
