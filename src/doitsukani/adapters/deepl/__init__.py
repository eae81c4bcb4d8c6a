"""Public interface for the DeepL adapter."""

from __future__ import annotations

from .client import DeepLClient, raise_for_deepl_status
from .context import extract_mnemonic_context
from .schema import TranslateResponse, UsageResponse

__all__ = [
    "DeepLClient",
    "TranslateResponse",
    "UsageResponse",
    "extract_mnemonic_context",
    "raise_for_deepl_status",
]
