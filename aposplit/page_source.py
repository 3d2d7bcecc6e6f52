"""
Page Source
===========
Read access to the pages of the source PDF using PyMuPDF (fitz).

The splitter only needs three operations from a PDF backend: the page count,
the plain text of a page, and copying a page into another document. They are
declared on `PageSource` so the backend can be swapped without touching the
segmentation logic.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


class PageSource(ABC):
    """Backend-neutral view of an opened PDF."""

    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""

    @abstractmethod
    def page_text(self, index: int) -> str:
        """Plain text of the page at zero-based `index`."""

    @abstractmethod
    def copy_page_into(self, destination: Any, index: int) -> None:
        """Append page `index` to the `destination` document."""

    def close(self) -> None:
        """Release the underlying document. Safe to call twice."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def pages(self, start: int = 0) -> Iterator[PageHandle]:
        """Iterate page handles in ascending order from `start`."""
        for index in range(start, self.page_count()):
            yield PageHandle(self, index)


class PageHandle:
    """
    One page of an opened source. The text is extracted on first access
    and cached for the lifetime of the handle.
    """

    __slots__ = ("source", "index", "_text")

    def __init__(self, source: PageSource, index: int):
        self.source = source
        self.index = index
        self._text: Optional[str] = None

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = self.source.page_text(self.index)
        return self._text

    def __repr__(self) -> str:
        return f"PageHandle(index={self.index})"


class PyMuPDFPageSource(PageSource):
    """
    PageSource backed by a PyMuPDF document.

    Usage:
        with PyMuPDFPageSource("batch.pdf") as source:
            text = source.page_text(0)
    """

    def __init__(self, pdf_path: str | os.PathLike):
        self.pdf_path = os.fspath(pdf_path)
        if not os.path.exists(self.pdf_path):
            raise FileNotFoundError(f"PDF not found: {self.pdf_path}")

        try:
            self.doc: Optional[fitz.Document] = fitz.open(self.pdf_path)
        except Exception as e:
            raise RuntimeError(
                f"Cannot open PDF {self.pdf_path}: {e}"
            ) from e

        logger.debug(
            f"Opened {self.pdf_path} ({self.doc.page_count} pages)"
        )

    def page_count(self) -> int:
        return self.doc.page_count

    def page_text(self, index: int) -> str:
        if index < 0 or index >= self.page_count():
            raise IndexError(f"Page index out of range: {index}")
        return self.doc[index].get_text() or ""

    def copy_page_into(self, destination: fitz.Document, index: int) -> None:
        destination.insert_pdf(self.doc, from_page=index, to_page=index)

    @property
    def metadata(self) -> dict:
        """Document metadata (title, author, producer...)."""
        return self.doc.metadata or {}

    def close(self) -> None:
        if self.doc is not None:
            self.doc.close()
            self.doc = None
