"""OpenAI client helpers.

The API key is treated as an opaque bearer token: it is handed to the OpenAI
client as-is and never inspected, stored, or logged.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv

try:  # Allow module import even when the OpenAI dependency is absent.
    from openai import OpenAI  # type: ignore
except Exception:  # pragma: no cover - optional dependency guard
    OpenAI = None  # type: ignore

from ..errors import CredentialError

__all__ = ["API_KEY_ENV", "load_client", "validate_api_key"]

API_KEY_ENV = "OPENAI_API_KEY"

logger = logging.getLogger(__name__)


def load_client(api_key: Optional[str] = None) -> Any:
    """Initialize an OpenAI client from ``api_key`` or the environment."""
    if OpenAI is None:
        raise CredentialError(
            "The 'openai' package is required to create a client. "
            "Install it and retry."
        )
    key = (api_key or "").strip()
    if not key:
        load_dotenv()
        key = (os.getenv(API_KEY_ENV) or "").strip()
    if not key:
        raise CredentialError(
            f"{API_KEY_ENV} not found in environment. Pass --api-key, set "
            "it, or add it to .env"
        )
    return OpenAI(api_key=key)


def validate_api_key(api_key: str, *, client: Any = None) -> bool:
    """Return whether the provider accepts ``api_key``.

    A cheap model listing call is used as the probe. Any failure, including
    network errors, counts as an invalid key.
    """
    if not (api_key or "").strip() and client is None:
        return False
    try:
        probe = client if client is not None else load_client(api_key)
        probe.models.list()
    except Exception as exc:
        logger.warning(
            "api key validation failed",
            extra={"error": type(exc).__name__},
        )
        return False
    return True
