"""
Text Normalization
==================
Accent folding and filename-safe cleanup shared by the classifier,
the extractors and the writer.

All functions are total: whatever the input, they return a usable string.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

EMPTY_INPUT_PLACEHOLDER = "chaine_vide"
EMPTY_RESULT_PLACEHOLDER = "nettoyage_vide"
CLEAN_PLACEHOLDER = "x"

_NON_FILENAME_CHARS = re.compile(r"[^a-z0-9]")
_REPEATED_UNDERSCORES = re.compile(r"_+")

# Characters rejected by at least one common filesystem, plus control chars
_INVALID_PATH_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_NON_WORD_CHARS = re.compile(r"[^\w\-]")


def normalize(text: str) -> str:
    """
    Strip diacritics and lowercase.

    Decomposes to NFD, drops non-spacing marks, recomposes to NFC.
    "Édition" -> "edition".
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(
        c for c in decomposed if unicodedata.category(c) != "Mn"
    )
    return unicodedata.normalize("NFC", stripped).lower()


def sanitize_for_filename(text: Optional[str]) -> str:
    """
    Reduce a string to lowercase ASCII letters, digits and single
    underscores.

    Returns "chaine_vide" for empty input and "nettoyage_vide" when nothing
    survives the cleanup.
    """
    if not text:
        return EMPTY_INPUT_PLACEHOLDER

    s = _NON_FILENAME_CHARS.sub("_", normalize(text))
    s = _REPEATED_UNDERSCORES.sub("_", s).strip("_")
    return s or EMPTY_RESULT_PLACEHOLDER


def clean(text: Optional[str]) -> str:
    """
    Looser cleanup used for certificate file names.

    Keeps case and non-ASCII word characters; anything else becomes "_".
    Blank input or an empty result gives "x".
    """
    if not text or not text.strip():
        return CLEAN_PLACEHOLDER

    s = _INVALID_PATH_CHARS.sub("_", text)
    s = _NON_WORD_CHARS.sub("_", s)
    s = _REPEATED_UNDERSCORES.sub("_", s).strip("_")
    return s or CLEAN_PLACEHOLDER
