"""
Document Type Classifier
========================
Decides which template a batch export follows by looking at its cover page.
"""

from __future__ import annotations

import re

from .models import DocumentType
from .normalizer import normalize

# "Édition d'attestations de réussite", matched on accent-folded text
CERTIFICATE_EDITION_PATTERN = re.compile(
    r"edition\s*d['’`]\s*attestations\s*de\s*r[ée]ussite", re.IGNORECASE
)


def classify_document(first_page_text: str) -> DocumentType:
    """
    Classify a batch export from the text of its first page.

    Certificate batches announce themselves on the cover page; anything
    else is treated as a grade report batch.
    """
    if CERTIFICATE_EDITION_PATTERN.search(normalize(first_page_text or "")):
        return DocumentType.CERTIFICATE
    return DocumentType.GRADE_REPORT
