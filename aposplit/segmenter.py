"""
Student Segmenter
=================
Single-pass state machine that groups the pages of a grade report batch into
contiguous runs, one run per student, based on the student number found on
each page.

Pages are never reordered. A page where no student number can be read stays
with the previous page's student unless that student had a number, in which
case it opens a new "unknown" run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional

from .extractors import extract_grade_report_metadata
from .models import GradeReportMetadata
from .page_source import PageHandle, PageSource

logger = logging.getLogger(__name__)

# The first page of every batch export is a cover page
COVER_PAGE_COUNT = 1


@dataclass
class StudentRun:
    """Consecutive pages attributed to the same student."""
    metadata: GradeReportMetadata
    pages: list[PageHandle] = field(default_factory=list)

    @property
    def key(self) -> Optional[str]:
        return self.metadata.key

    @property
    def name(self) -> Optional[str]:
        return self.metadata.name

    @property
    def page_indices(self) -> list[int]:
        return [p.index for p in self.pages]


class StudentSegmenter:
    """
    Transforms an ordered sequence of pages into StudentRun groups.

    Runs are yielded as soon as they are complete, so the caller can write
    each one before the next is read.
    """

    def __init__(
        self,
        extractor: Callable[[str], GradeReportMetadata] = extract_grade_report_metadata,
    ):
        self.extractor = extractor
        self.current_run: Optional[StudentRun] = None

    def reset(self):
        """Drop any in-progress run."""
        self.current_run = None

    def segment(
        self,
        source: PageSource,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[StudentRun]:
        """Segment every page of `source` after the cover page."""
        total = max(0, source.page_count() - COVER_PAGE_COUNT)
        pages = source.pages(start=COVER_PAGE_COUNT)
        yield from self.segment_pages(
            pages, total=total, progress_callback=progress_callback
        )

    def segment_pages(
        self,
        pages: Iterable[PageHandle],
        total: int = 0,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[StudentRun]:
        """Segment an already-filtered sequence of pages."""
        self.reset()

        for done, page in enumerate(pages, start=1):
            metadata = self.extractor(page.text)
            logger.debug(
                f"Page {page.index + 1}: name={metadata.name!r} "
                f"key={metadata.key!r}"
            )

            if self._starts_new_run(metadata):
                finished = self._finalize_run()
                if finished:
                    yield finished
                self._start_new_run(metadata, page)

            self.current_run.pages.append(page)

            if progress_callback:
                progress_callback(done, total)

        finished = self._finalize_run()
        if finished:
            yield finished

    def _starts_new_run(self, metadata: GradeReportMetadata) -> bool:
        run = self.current_run
        if run is None:
            return True
        if metadata.key is not None:
            return metadata.key != run.key
        # Number disappeared: the previous student's pages are over
        return run.key is not None

    def _start_new_run(self, metadata: GradeReportMetadata, page: PageHandle):
        if metadata.key is None:
            logger.info(f"Page {page.index + 1} has no student number")
        else:
            logger.info(
                f"Detected student {metadata.key} on page {page.index + 1}"
            )
        self.current_run = StudentRun(metadata=metadata)

    def _finalize_run(self) -> Optional[StudentRun]:
        """Close the current run, returning it unless it has no pages."""
        run = self.current_run
        self.current_run = None
        if run is None or not run.pages:
            return None
        return run
