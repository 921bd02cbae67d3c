"""PDF text extraction backed by markitdown."""

from __future__ import annotations

import importlib
import io
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from .errors import (
    CorruptDocumentError,
    DependencyError,
    EmptyDocumentError,
    UnsupportedDocumentError,
)

__all__ = [
    "MAX_FILE_SIZE",
    "PdfConverter",
    "build_converter",
    "extract_file",
    "extract_text",
]

MAX_FILE_SIZE = 50 * 1024 * 1024
_PDF_MAGIC = b"%PDF-"
_PROTECTION_HINTS = ("password", "encrypt", "protected")

PdfConverter = Callable[[bytes], str]

logger = logging.getLogger(__name__)


def extract_text(
    data: bytes,
    *,
    filename: Optional[str] = None,
    converter: Optional[PdfConverter] = None,
    max_bytes: int = MAX_FILE_SIZE,
) -> str:
    """Return the plain text contained in the PDF ``data``.

    Raises :class:`UnsupportedDocumentError` for non-PDF or oversized input,
    :class:`EmptyDocumentError` when there is nothing to read, and
    :class:`CorruptDocumentError` when the backend fails to parse the file.
    """

    if filename and Path(filename).suffix.lower() != ".pdf":
        raise UnsupportedDocumentError(
            f"Unsupported file type '{Path(filename).suffix or filename}'. "
            "Please upload a PDF file."
        )
    if not data:
        raise EmptyDocumentError("The uploaded file is empty.")
    if len(data) > max_bytes:
        raise UnsupportedDocumentError(
            "File size exceeds {0} limit. Please upload a smaller file.".format(
                _format_size(max_bytes)
            )
        )
    if data.lstrip()[: len(_PDF_MAGIC)] != _PDF_MAGIC:
        raise UnsupportedDocumentError(
            "Invalid file type. Please upload a PDF file."
        )

    convert = converter or build_converter()
    try:
        text = convert(data)
    except DependencyError:
        raise
    except Exception as exc:
        raise CorruptDocumentError(_describe_failure(exc)) from exc

    if not isinstance(text, str) or not text.strip():
        raise EmptyDocumentError(
            "Could not extract text from PDF. The file may be empty or "
            "protected."
        )
    logger.info(
        "extracted pdf text",
        extra={"bytes": len(data), "characters": len(text)},
    )
    return text


def extract_file(
    path: Path,
    *,
    converter: Optional[PdfConverter] = None,
    max_bytes: int = MAX_FILE_SIZE,
) -> str:
    """Read ``path`` and extract its text with :func:`extract_text`."""

    source = Path(path).expanduser()
    if not source.is_file():
        raise FileNotFoundError(f"Input not found: {source}")
    size = source.stat().st_size
    if size > max_bytes:
        raise UnsupportedDocumentError(
            "File size exceeds {0} limit. Please upload a smaller file.".format(
                _format_size(max_bytes)
            )
        )
    return extract_text(
        source.read_bytes(),
        filename=source.name,
        converter=converter,
        max_bytes=max_bytes,
    )


def build_converter() -> PdfConverter:
    """Return the default markitdown-backed PDF converter."""

    module = _import_module("markitdown", "MarkItDown")
    engine = getattr(module, "MarkItDown")()

    def convert_with_markitdown(data: bytes) -> str:
        result = engine.convert_stream(io.BytesIO(data), file_extension=".pdf")
        text = _coerce_text_result(result)
        if text is None:
            raise DependencyError(
                "markitdown returned an unsupported response; expected text."
            )
        return text

    return convert_with_markitdown


def _import_module(module: str, required_attribute: str | None = None):
    try:
        imported = importlib.import_module(module)
    except ImportError as exc:
        raise DependencyError(
            f"Dependency '{module}' is required for PDF extraction. "
            'Install it with `pip install "markitdown[pdf]"`.'
        ) from exc
    if required_attribute is not None and not hasattr(
        imported, required_attribute
    ):
        raise DependencyError(
            f"Dependency '{module}' is installed but missing the "
            f"'{required_attribute}' attribute. Upgrade or reinstall the "
            "package."
        )
    return imported


def _coerce_text_result(result: Any) -> str | None:
    for attribute in ("markdown", "text_content"):
        value = getattr(result, attribute, None)
        if isinstance(value, str):
            return value
    if isinstance(result, str):
        return result
    return None


def _describe_failure(exc: Exception) -> str:
    detail = str(exc) or type(exc).__name__
    lowered = detail.lower()
    if any(hint in lowered for hint in _PROTECTION_HINTS):
        return (
            f"{detail}. Please upload a PDF that is not password protected."
        )
    return (
        f"{detail}. The PDF file appears to be corrupted. Please try another "
        "file."
    )


def _format_size(size: int) -> str:
    return f"{size // (1024 * 1024)}MB"
