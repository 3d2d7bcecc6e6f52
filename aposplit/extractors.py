"""
Metadata Extractors
===================
Pulls the student name and student number out of the text of a single page,
for each of the two supported templates.

A field that cannot be found is never an error: grade report fields come
back as None, certificate fields as the "nan" placeholder.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import CertificateMetadata, GradeReportMetadata
from .normalizer import clean, normalize

logger = logging.getLogger(__name__)

# ─── Grade Report Patterns ────────────────────────────────────────────────────

# Footer token preceding "NAME Firstname" on every transcript page
NAME_LINE_MARKER = "Page :/"
NAME_MARKER_PATTERN = re.compile(re.escape(NAME_LINE_MARKER), re.IGNORECASE)

# "N° Etudiant : 12345678", "n° étudiant-12345678" (matched on folded text)
STUDENT_NUMBER_PATTERN = re.compile(
    r"n[°º]\s*etudiant\s*[:\-]?\s*([0-9]+)", re.IGNORECASE
)

# ─── Certificate Patterns ─────────────────────────────────────────────────────

# "Monsieur Jean DUPONT a été décerné à", matched on folded text
CERTIFICATE_NAME_PATTERN = re.compile(
    r"(monsieur|madame)\s+(.+?)a\s+ete\s+decerne+\s+a\b", re.IGNORECASE
)

# "...(INE)12345678N° étudiant :"
CERTIFICATE_NUMBER_PATTERN = re.compile(
    r"\)([0-9]+)n[°º]\s*etudiant\s*:", re.IGNORECASE
)

CERTIFICATE_BODY_PATTERN = re.compile(
    r"a\s+ete\s+decerne+\s+a\b", re.IGNORECASE
)

NOT_AVAILABLE = "nan"


# ─── Grade Reports ────────────────────────────────────────────────────────────


def extract_grade_report_metadata(page_text: str) -> GradeReportMetadata:
    """
    Extract (name, student number) from a transcript page.

    Scans lines in order and stops once both fields are known.
    """
    name: Optional[str] = None
    key: Optional[str] = None

    for raw_line in (page_text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if name is None:
            name = _extract_footer_name(line)

        if key is None:
            match = STUDENT_NUMBER_PATTERN.search(normalize(line))
            if match:
                key = match.group(1)

        if name is not None and key is not None:
            break

    return GradeReportMetadata(name=name, key=key)


def _extract_footer_name(line: str) -> Optional[str]:
    """
    Read the uppercase name that follows the footer marker.

    "Page :/ DUPONT Jean" yields "DUPONT J" while collecting uppercase
    characters; the dangling initial is dropped to give "DUPONT".
    """
    marker = NAME_MARKER_PATTERN.search(line)
    if not marker:
        return None

    tail = line[marker.end():].lstrip()
    collected = []
    for c in tail:
        if c.isupper() or c.isspace() or c in "'-":
            collected.append(c)
        else:
            break

    candidate = "".join(collected).strip()
    if not candidate:
        return None

    parts = candidate.rsplit(None, 1)
    if len(parts) == 2 and len(parts[1]) == 1 and parts[1].isupper():
        candidate = parts[0].strip()

    return candidate or None


# ─── Certificates ─────────────────────────────────────────────────────────────


def extract_certificate_metadata(page_text: str) -> CertificateMetadata:
    """
    Extract (surname, student number) from a certificate page.

    The page is searched with its line breaks removed, since PyMuPDF puts
    each text run (name, award sentence, number, label) on its own line.
    The given name (first word after the salutation) is dropped so that the
    file is named after the surname.
    """
    folded = normalize(page_text or "")
    joined = "".join(folded.splitlines())
    name = ""
    identifier = ""

    name_match = CERTIFICATE_NAME_PATTERN.search(joined)
    if name_match:
        full_name = name_match.group(2).strip()
        parts = full_name.split(None, 1)
        name = clean(parts[1].strip() if len(parts) == 2 else full_name)

    number_match = CERTIFICATE_NUMBER_PATTERN.search(joined)
    if number_match:
        identifier = clean(number_match.group(1))
    else:
        identifier = _find_certificate_number_by_line(folded)

    if not name.strip():
        logger.debug("Certificate name not found, using placeholder")
        name = NOT_AVAILABLE
    if not identifier.strip():
        logger.debug("Certificate student number not found, using placeholder")
        identifier = NOT_AVAILABLE

    return CertificateMetadata(
        name=normalize(name),
        identifier=normalize(identifier),
    )


def _find_certificate_number_by_line(folded_text: str) -> str:
    """
    Line-by-line fallback for pages that print the label before the number
    ("n° etudiant : 98765") instead of "(INE)98765n° etudiant :".
    """
    for line in folded_text.splitlines():
        match = STUDENT_NUMBER_PATTERN.search(line)
        if match:
            return clean(match.group(1))
    return ""


def is_certificate_page(page_text: str) -> bool:
    """True when the page carries the certificate award sentence."""
    return bool(CERTIFICATE_BODY_PATTERN.search(normalize(page_text or "")))
