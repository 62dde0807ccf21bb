"""
Domain errors raised by the sprint engine.
"""


class SprintEngineError(Exception):
    """Base class for all engine errors."""


class TextExtractionError(SprintEngineError):
    """Raised by a text source when a page cannot be read."""

    def __init__(self, page_number: int, reason: str = ""):
        self.page_number = page_number
        self.reason = reason
        super().__init__(f"Could not extract text from page {page_number}: {reason}")


class SprintValidationError(SprintEngineError, ValueError):
    """Raised when a sprint request is rejected before any scoring happens."""


class DocumentNotFoundError(SprintEngineError):
    """Raised when a document does not exist for the given reader."""
