"""
Splitter Engine
===============
Main orchestrator that combines classification, metadata extraction,
segmentation and writing into a complete split of one batch export.

Usage:
    engine = SplitterEngine(config)
    result = engine.split("path/to/export.pdf", "path/to/output")
    # result is a SplitResult; result.files_written is the file count

Architecture:
    PDF → PageSource → Classifier ─┬─ grade report → StudentSegmenter → RunWriter
                                   └─ certificate  → per-page extraction → RunWriter
    → ValidationEngine → SplitResult
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import fitz  # PyMuPDF

from .classifier import classify_document
from .extractors import extract_certificate_metadata, is_certificate_page
from .models import (
    DocumentType,
    PlannedOutput,
    SplitPlan,
    SplitResult,
)
from .normalizer import sanitize_for_filename
from .page_source import PageHandle, PageSource, PyMuPDFPageSource
from .segmenter import COVER_PAGE_COUNT, StudentSegmenter
from .validator import ValidationEngine
from .writer import (
    FilenameAllocator,
    RunWriter,
    certificate_filename,
    grade_report_filename,
)

logger = logging.getLogger(__name__)

GRADE_REPORT_DIR_SUFFIX = "_par_etudiant"
CERTIFICATE_DIR_SUFFIX = "_attestations"

ProgressCallback = Callable[[int, int], None]


@dataclass
class SplitterConfig:
    """Configuration for the splitter engine."""

    # Output settings
    compress: bool = True

    # Refuse to split a certificate batch when no page carries the
    # certificate sentence
    verify_certificates: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class SplitterEngine:
    """
    Splits one batch export into per-student PDFs.

    Orchestrates the full pipeline:
        1. Argument validation
        2. Classification from the cover page
        3. Grade report segmentation or certificate extraction
        4. Writing
        5. Validation report

    Holds no state between calls; separate engines may run on separate
    files concurrently.
    """

    def __init__(
        self,
        config: Optional[SplitterConfig] = None,
        page_source_factory: Callable[[str], PageSource] = PyMuPDFPageSource,
        document_factory: Callable[[], Any] = fitz.open,
    ):
        self.config = config or SplitterConfig()
        self.page_source_factory = page_source_factory
        self.document_factory = document_factory
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the aposplit package
        package_logger = logging.getLogger("aposplit")
        package_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler, once per log file
        if self.config.log_file and not self._has_file_handler(
            package_logger, self.config.log_file
        ):
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    @staticmethod
    def _has_file_handler(package_logger: logging.Logger, log_file: str) -> bool:
        target = os.path.abspath(log_file)
        return any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in package_logger.handlers
        )

    # ─── Public API ──────────────────────────────────────────────────────────

    def split(
        self,
        input_path: str | os.PathLike,
        output_base_dir: Optional[str | os.PathLike] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> SplitResult:
        """
        Split a batch export into one PDF per student.

        Args:
            input_path: Path to the batch PDF.
            output_base_dir: Base directory for grade report output.
                Defaults to the directory of `input_path`. Certificate
                batches are always written next to the input file.
            progress_callback: Callback(done, total) called on each
                content page.

        Returns:
            SplitResult listing written and failed files plus a report.

        Raises:
            ValueError: If a path argument is empty.
            FileNotFoundError: If the input PDF doesn't exist.
            RuntimeError: If the PDF cannot be opened.
        """
        input_path, output_base_dir = self._validate_paths(
            input_path, output_base_dir
        )

        start_time = time.time()
        logger.info(f"Starting split of: {input_path}")

        with self.page_source_factory(input_path) as source:
            # ── Step 1: Classify ──────────────────────────────────────────
            document_type = self.classify(source)
            output_dir = self._resolve_output_dir(
                document_type, input_path, output_base_dir
            )
            logger.info(
                f"Detected {document_type.value} batch "
                f"({source.page_count()} pages)"
            )

            # ── Step 2: Segment and write ─────────────────────────────────
            if document_type == DocumentType.CERTIFICATE:
                writer = self._split_certificates(
                    source, output_dir, progress_callback
                )
            else:
                writer = self._split_grade_reports(
                    source, output_dir, progress_callback
                )

            result = SplitResult(
                source_pdf=input_path,
                document_type=document_type,
                output_dir=str(output_dir),
                total_pages=source.page_count(),
                written=writer.written if writer else [],
                failed=writer.failed if writer else [],
            )

        # ── Step 3: Validation ────────────────────────────────────────────
        result.report = ValidationEngine().validate(result)

        elapsed = time.time() - start_time
        logger.info(
            f"Split complete in {elapsed:.2f}s, "
            f"{result.files_written} files written to {output_dir}"
        )
        if result.failed:
            logger.warning(f"{result.files_failed} files could not be saved")

        return result

    def plan(
        self,
        input_path: str | os.PathLike,
        output_base_dir: Optional[str | os.PathLike] = None,
    ) -> SplitPlan:
        """
        Compute the files a split would write, without writing anything.

        Same arguments and errors as `split`.
        """
        input_path, output_base_dir = self._validate_paths(
            input_path, output_base_dir
        )

        with self.page_source_factory(input_path) as source:
            document_type = self.classify(source)
            output_dir = self._resolve_output_dir(
                document_type, input_path, output_base_dir
            )
            allocator = FilenameAllocator()
            plan = SplitPlan(
                source_pdf=input_path,
                document_type=document_type,
                output_dir=str(output_dir),
                total_pages=source.page_count(),
            )

            if document_type == DocumentType.CERTIFICATE:
                for page in self._certificate_pages(source):
                    metadata = extract_certificate_metadata(page.text)
                    plan.outputs.append(PlannedOutput(
                        filename=allocator.allocate(
                            certificate_filename(metadata)
                        ),
                        source_pages=[page.index],
                        name=metadata.name,
                        key=metadata.identifier,
                    ))
            else:
                for run in StudentSegmenter().segment(source):
                    plan.outputs.append(PlannedOutput(
                        filename=allocator.allocate(
                            grade_report_filename(run.metadata)
                        ),
                        source_pages=run.page_indices,
                        name=run.name,
                        key=run.key,
                    ))

        return plan

    def classify(self, source: PageSource) -> DocumentType:
        """Classify an opened source from its first page."""
        if source.page_count() == 0:
            logger.warning("Source PDF has no pages")
            return DocumentType.GRADE_REPORT
        return classify_document(source.page_text(0))

    # ─── Pipelines ───────────────────────────────────────────────────────────

    def _split_grade_reports(
        self,
        source: PageSource,
        output_dir: Path,
        progress_callback: Optional[ProgressCallback],
    ) -> RunWriter:
        logger.info("Phase 1: Grade report segmentation")
        writer = self._make_writer(source, output_dir)
        segmenter = StudentSegmenter()

        for run in segmenter.segment(source, progress_callback=progress_callback):
            writer.write_run(run)

        return writer

    def _split_certificates(
        self,
        source: PageSource,
        output_dir: Path,
        progress_callback: Optional[ProgressCallback],
    ) -> Optional[RunWriter]:
        logger.info("Phase 1: Certificate extraction")
        pages = self._certificate_pages(source)
        if not pages:
            logger.warning("No certificate page detected, nothing written")
            return None

        writer = self._make_writer(source, output_dir)
        for done, page in enumerate(pages, start=1):
            metadata = extract_certificate_metadata(page.text)
            writer.write_certificate(page, metadata)
            if progress_callback:
                progress_callback(done, len(pages))

        return writer

    def _certificate_pages(self, source: PageSource) -> list[PageHandle]:
        """
        Content pages of a certificate batch, or an empty list when the
        classification cannot be corroborated by any page.
        """
        pages = list(source.pages(start=COVER_PAGE_COUNT))
        if self.config.verify_certificates and pages:
            if not any(is_certificate_page(p.text) for p in pages):
                logger.warning(
                    "Cover page announces certificates but no page "
                    "contains a certificate"
                )
                return []
        return pages

    def _make_writer(self, source: PageSource, output_dir: Path) -> RunWriter:
        return RunWriter(
            source,
            output_dir,
            compress=self.config.compress,
            document_factory=self.document_factory,
        )

    # ─── Helpers ─────────────────────────────────────────────────────────────

    def _validate_paths(
        self,
        input_path: str | os.PathLike,
        output_base_dir: Optional[str | os.PathLike],
    ) -> tuple[str, str]:
        """Check arguments before any I/O; returns absolute paths."""
        if input_path is None or not os.fspath(input_path):
            raise ValueError("input_path must be a non-empty path")
        if output_base_dir is not None and not os.fspath(output_base_dir):
            raise ValueError("output_base_dir must be a non-empty path")

        input_path = os.path.abspath(os.fspath(input_path))
        if not os.path.isfile(input_path):
            raise FileNotFoundError(f"PDF not found: {input_path}")

        if output_base_dir is None:
            output_base_dir = os.path.dirname(input_path)
        return input_path, os.path.abspath(os.fspath(output_base_dir))

    def _resolve_output_dir(
        self,
        document_type: DocumentType,
        input_path: str,
        output_base_dir: str,
    ) -> Path:
        """
        Grade reports go to {output_base_dir}/{sanitized stem}_par_etudiant,
        certificates to {input dir}/{stem}_attestations.
        """
        stem = Path(input_path).stem
        if document_type == DocumentType.CERTIFICATE:
            return Path(input_path).parent / f"{stem}{CERTIFICATE_DIR_SUFFIX}"
        return Path(output_base_dir) / (
            f"{sanitize_for_filename(stem)}{GRADE_REPORT_DIR_SUFFIX}"
        )


def auto_split(
    input_path: str | os.PathLike,
    output_base_dir: str | os.PathLike,
    config: Optional[SplitterConfig] = None,
) -> SplitResult:
    """
    Detect the batch type of `input_path` and split it.

    `output_base_dir` is required here; certificate batches ignore it.
    """
    if output_base_dir is None or not os.fspath(output_base_dir):
        raise ValueError("output_base_dir must be a non-empty path")
    return SplitterEngine(config).split(input_path, output_base_dir)
