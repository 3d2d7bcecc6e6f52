"""Shared fixtures: in-memory page sources and real PDF builders."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Optional

import fitz
import pytest

from aposplit.page_source import PageSource


class FakePageSource(PageSource):
    """PageSource over a list of page texts."""

    def __init__(self, texts: list[str]):
        self.texts = texts
        self.closed = False
        self.text_calls: Counter = Counter()

    def page_count(self) -> int:
        return len(self.texts)

    def page_text(self, index: int) -> str:
        self.text_calls[index] += 1
        return self.texts[index]

    def copy_page_into(self, destination, index: int) -> None:
        destination.pages.append(index)

    def close(self) -> None:
        self.closed = True


class FakeDocument:
    """Destination document recording copied pages instead of writing a PDF."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.pages: list[int] = []
        self.saved_to: Optional[str] = None
        self.save_kwargs: dict = {}
        self.closed = False

    def save(self, path, **kwargs):
        if self.fail:
            raise OSError("disk full")
        self.saved_to = str(path)
        self.save_kwargs = kwargs

    def close(self):
        self.closed = True


def grade_page(number: Optional[str] = None, name: Optional[str] = None) -> str:
    """Text of a transcript page with an optional number and footer name."""
    lines = ["RELEVE DE NOTES ET RESULTATS", "Licence Informatique"]
    if number:
        lines.append(f"N° Etudiant : {number}")
    lines.append("UE1 Algorithmique 14,5/20")
    if name:
        lines.append(f"Edite le 01/07/2025 Page :/ {name}")
    return "\n".join(lines)


def certificate_page(salutation: str, full_name: str, number: str) -> str:
    """Text of one certificate page."""
    return "\n".join([
        "ATTESTATION DE REUSSITE",
        f"INE (0A1B2C3D4E){number}N° étudiant :",
        f"{salutation} {full_name} a été décerné à l'issue de l'année",
        "le diplôme de Licence Mention Informatique",
    ])


GRADE_COVER = "Edition des relevés de notes\nSession 1 - 2024/2025"
CERTIFICATE_COVER = "Édition d'attestations de réussite\nSession 1 - 2024/2025"


def make_pdf(path: Path, page_texts: list[str]) -> Path:
    """Write a PDF with one page per text using PyMuPDF."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        page.insert_text((50, 72), text, fontsize=10)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def fake_source():
    return FakePageSource


@pytest.fixture
def pdf_factory(tmp_path):
    def _make(name: str, page_texts: list[str]) -> Path:
        return make_pdf(tmp_path / name, page_texts)
    return _make


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by SplitterEngine between tests."""
    yield
    package_logger = logging.getLogger("aposplit")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
