"""Derive a DeepL ``context`` hint from a subject's meaning mnemonic."""

from __future__ import annotations

import re

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")

MIN_CONTEXT_LENGTH = 20
MAX_CONTEXT_LENGTH = 200
_MIN_SENTENCE_CUT = 100
_MIN_WORD_CUT = 50


def extract_mnemonic_context(mnemonic: str | None, meaning: str | None) -> str | None:
    """Return cleaned mnemonic text usable as translation context, or ``None``.

    Markup such as ``<radical>ground</radical>`` is stripped and whitespace is
    collapsed. Short mnemonics carry too little signal and are dropped; long ones
    are cut at a sentence boundary if one exists past the first 100 characters,
    otherwise at a word boundary.
    """

    if not mnemonic or not meaning:
        return None

    cleaned = _WHITESPACE_PATTERN.sub(" ", _TAG_PATTERN.sub("", mnemonic)).strip()
    if len(cleaned) < MIN_CONTEXT_LENGTH:
        return None
    if len(cleaned) <= MAX_CONTEXT_LENGTH:
        return cleaned

    sentence_end = cleaned.rfind(".", 0, MAX_CONTEXT_LENGTH + 1)
    if sentence_end > _MIN_SENTENCE_CUT:
        return cleaned[: sentence_end + 1]
    word_end = cleaned.rfind(" ", 0, MAX_CONTEXT_LENGTH + 1)
    return cleaned[: word_end if word_end > _MIN_WORD_CUT else MAX_CONTEXT_LENGTH]
