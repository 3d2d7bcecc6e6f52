"""
Run Writer
==========
Materializes student runs and certificate pages as individual PDF files.

File names are derived from the extracted metadata and made unique within
one split, so two runs for the same student never overwrite each other.
A file that fails to save is logged and recorded; the remaining files are
still written.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

import fitz  # PyMuPDF

from .models import (
    CertificateMetadata,
    DocumentType,
    GradeReportMetadata,
    OutputFile,
    WriteFailure,
)
from .normalizer import sanitize_for_filename
from .page_source import PageHandle, PageSource
from .segmenter import StudentRun

logger = logging.getLogger(__name__)

NAME_NOT_FOUND = "NomNonTrouve"
NUMBER_NOT_FOUND = "NumNonTrouve"


# ─── File Naming ──────────────────────────────────────────────────────────────


def grade_report_filename(metadata: GradeReportMetadata) -> str:
    """`{name}_{number}.pdf`, both sanitized, with fallbacks when missing."""
    safe_name = sanitize_for_filename(metadata.name or NAME_NOT_FOUND)
    safe_key = sanitize_for_filename(metadata.key or NUMBER_NOT_FOUND)
    return f"{safe_name}_{safe_key}.pdf"


def certificate_filename(metadata: CertificateMetadata) -> str:
    """`{name}-{identifier}.pdf`; the metadata is already cleaned."""
    return f"{metadata.name}-{metadata.identifier}.pdf"


class FilenameAllocator:
    """
    Hands out file names unique within one split.

    A repeated name gets a numeric suffix: "dupont_111.pdf",
    "dupont_111_2.pdf", "dupont_111_3.pdf".
    """

    def __init__(self):
        self._used: set[str] = set()

    def allocate(self, filename: str) -> str:
        stem, ext = os.path.splitext(filename)
        candidate = filename
        counter = 1
        while candidate.lower() in self._used:
            counter += 1
            candidate = f"{stem}_{counter}{ext}"
        self._used.add(candidate.lower())
        return candidate


# ─── Writer ───────────────────────────────────────────────────────────────────


class RunWriter:
    """
    Writes one PDF per run (grade reports) or per page (certificates).

    Args:
        source: Opened source document to copy pages from.
        output_dir: Destination directory, created if missing.
        compress: Garbage-collect and deflate output streams on save.
        document_factory: Creates an empty destination document.
    """

    def __init__(
        self,
        source: PageSource,
        output_dir: str | os.PathLike,
        compress: bool = True,
        document_factory: Callable[[], Any] = fitz.open,
    ):
        self.source = source
        self.output_dir = Path(output_dir)
        self.compress = compress
        self.document_factory = document_factory
        self.allocator = FilenameAllocator()
        self.written: list[OutputFile] = []
        self.failed: list[WriteFailure] = []

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write_run(self, run: StudentRun) -> Optional[OutputFile]:
        """Write all pages of a grade report run to one file."""
        if not run.pages:
            return None
        filename = self.allocator.allocate(grade_report_filename(run.metadata))
        return self._write(
            filename,
            run.page_indices,
            DocumentType.GRADE_REPORT,
            name=run.name,
            key=run.key,
        )

    def write_certificate(
        self,
        page: PageHandle,
        metadata: CertificateMetadata,
    ) -> Optional[OutputFile]:
        """Write a single certificate page to its own file."""
        filename = self.allocator.allocate(certificate_filename(metadata))
        return self._write(
            filename,
            [page.index],
            DocumentType.CERTIFICATE,
            name=metadata.name,
            key=metadata.identifier,
        )

    def _write(
        self,
        filename: str,
        page_indices: list[int],
        document_type: DocumentType,
        name: Optional[str],
        key: Optional[str],
    ) -> Optional[OutputFile]:
        path = self.output_dir / filename
        destination = None
        try:
            destination = self.document_factory()
            for index in page_indices:
                self.source.copy_page_into(destination, index)
            destination.save(str(path), **self._save_options())
        except Exception as e:
            logger.error(f"Failed to save {filename}: {e}")
            self.failed.append(WriteFailure(
                path=str(path),
                source_pages=list(page_indices),
                error=str(e),
            ))
            return None
        finally:
            if destination is not None:
                destination.close()

        pages_label = ", ".join(str(i + 1) for i in page_indices)
        logger.info(f"Saved {filename} (pages {pages_label})")

        output = OutputFile(
            path=str(path),
            source_pages=list(page_indices),
            document_type=document_type,
            name=name,
            key=key,
        )
        self.written.append(output)
        return output

    def _save_options(self) -> dict:
        if self.compress:
            return {"garbage": 3, "deflate": True}
        return {}
