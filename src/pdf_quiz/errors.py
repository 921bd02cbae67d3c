"""Exception hierarchy shared by the pdf-quiz modules."""

from __future__ import annotations

__all__ = [
    "PdfQuizError",
    "QuizError",
    "InvalidInputError",
    "MissingResponseError",
    "AtStartError",
    "NotFinishedError",
    "SessionStateError",
    "ExtractionError",
    "EmptyDocumentError",
    "CorruptDocumentError",
    "UnsupportedDocumentError",
    "DependencyError",
    "GenerationError",
    "NoContentError",
    "MalformedResultError",
    "UpstreamUnavailableError",
    "InvalidSettingsError",
    "CredentialError",
    "StageError",
]


class PdfQuizError(RuntimeError):
    """Base class for every error raised by pdf-quiz."""


class QuizError(PdfQuizError):
    """Raised by the quiz session engine."""


class InvalidInputError(QuizError):
    """Raised when a session is started with an unusable question list."""


class MissingResponseError(QuizError):
    """Raised when advancing without a response for the current question."""


class AtStartError(QuizError):
    """Raised when retreating from the first question."""


class NotFinishedError(QuizError):
    """Raised when the result is requested before the quiz is complete."""


class SessionStateError(QuizError):
    """Raised when an operation is not valid in the current session state."""


class ExtractionError(PdfQuizError):
    """Raised when text cannot be extracted from a document."""


class EmptyDocumentError(ExtractionError):
    """Raised when a document is empty or yields no text."""


class CorruptDocumentError(ExtractionError):
    """Raised when the parsing backend cannot read the document."""


class UnsupportedDocumentError(ExtractionError):
    """Raised when the payload is not a supported document."""


class DependencyError(PdfQuizError):
    """Raised when an optional backend package is not installed."""


class GenerationError(PdfQuizError):
    """Raised when quiz questions cannot be generated."""


class NoContentError(GenerationError):
    """Raised when there is no text to send or the model returned nothing."""


class MalformedResultError(GenerationError):
    """Raised when the model output cannot be turned into questions."""


class UpstreamUnavailableError(GenerationError):
    """Raised when the model provider call fails."""


class InvalidSettingsError(PdfQuizError):
    """Raised when quiz settings are out of range."""


class CredentialError(PdfQuizError):
    """Raised when an API key is missing or rejected."""


class StageError(PdfQuizError):
    """Raised when a workflow step is attempted in the wrong stage."""
