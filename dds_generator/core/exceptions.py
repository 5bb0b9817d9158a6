"""Core custom exceptions for the application."""


class DDSError(Exception):
    """Base exception for every scoped failure of the DDS generator."""


class PromptValidationError(DDSError):
    """The submitted theme is blank; raised before any remote call is made."""


class ContentGenerationError(DDSError):
    """Base exception for unusable content returned by a remote model."""


class EmptyResponseError(ContentGenerationError):
    """The text model answered with blank text."""


class SchemaViolationError(ContentGenerationError):
    """The text model answer is not a JSON object matching the DDS schema."""


class NoImageReturnedError(ContentGenerationError):
    """The image model answered without an image payload."""


class GenerationError(DDSError):
    """Single wrapped failure of the text+image pipeline."""


class ExportError(DDSError):
    """Raised when rasterising or assembling the PDF fails."""
