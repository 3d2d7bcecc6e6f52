"""
Integration Tests
=================
End-to-end splits of real PDFs generated with PyMuPDF, through the Python
API and the command-line interface.
"""

from __future__ import annotations

import json
import logging
import os

import fitz
import pytest
from click.testing import CliRunner

from aposplit import auto_split
from aposplit.cli import cli
from aposplit.engine import SplitterConfig, SplitterEngine
from aposplit.models import DocumentType
from aposplit.page_source import PyMuPDFPageSource

from conftest import (
    CERTIFICATE_COVER,
    GRADE_COVER,
    certificate_page,
    grade_page,
)


def _page_count(path) -> int:
    with fitz.open(str(path)) as doc:
        return doc.page_count


def _pdf_names(directory) -> list[str]:
    return sorted(p.name for p in directory.glob("*.pdf"))


@pytest.fixture
def grade_batch(pdf_factory):
    return pdf_factory("Releves L3.pdf", [
        GRADE_COVER,
        grade_page("111", "DUPONT Jean"),
        grade_page("111", "DUPONT Jean"),
        grade_page("222", "MARTIN Anne"),
    ])


@pytest.fixture
def certificate_batch(pdf_factory):
    return pdf_factory("attestations.pdf", [
        CERTIFICATE_COVER,
        certificate_page("Monsieur", "Jean DUPONT", "98765"),
        certificate_page("Madame", "Anne MARTIN", "54321"),
    ])


# ═══════════════════════════════════════════════════════════════════════════════
# PAGE SOURCE
# ═══════════════════════════════════════════════════════════════════════════════


class TestPyMuPDFPageSource:
    """Test the PyMuPDF backend."""

    def test_page_access(self, grade_batch):
        with PyMuPDFPageSource(grade_batch) as source:
            assert source.page_count() == 4
            assert "N° Etudiant : 111" in source.page_text(1)
            assert "Page :/ DUPONT Jean" in source.page_text(1)

    def test_close_is_idempotent(self, grade_batch):
        source = PyMuPDFPageSource(grade_batch)
        source.close()
        source.close()
        assert source.doc is None

    def test_index_out_of_range(self, grade_batch):
        with PyMuPDFPageSource(grade_batch) as source:
            with pytest.raises(IndexError):
                source.page_text(4)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PyMuPDFPageSource(tmp_path / "missing.pdf")

    def test_unreadable_file(self, tmp_path):
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"this is not a pdf")
        with pytest.raises(RuntimeError):
            PyMuPDFPageSource(broken)

    def test_copy_page_into(self, grade_batch):
        destination = fitz.open()
        with PyMuPDFPageSource(grade_batch) as source:
            source.copy_page_into(destination, 3)
            assert destination.page_count == 1
            assert "222" in destination[0].get_text()
        destination.close()


# ═══════════════════════════════════════════════════════════════════════════════
# END-TO-END SPLITS
# ═══════════════════════════════════════════════════════════════════════════════


class TestGradeReportSplit:
    """Cover page + three transcript pages for two students."""

    def test_split(self, tmp_path, grade_batch):
        out_base = tmp_path / "out"
        result = auto_split(grade_batch, out_base)

        out_dir = out_base / "releves_l3_par_etudiant"
        assert result.document_type == DocumentType.GRADE_REPORT
        assert result.files_written == 2
        assert result.output_dir == str(out_dir)
        assert _pdf_names(out_dir) == ["dupont_111.pdf", "martin_222.pdf"]
        assert _page_count(out_dir / "dupont_111.pdf") == 2
        assert _page_count(out_dir / "martin_222.pdf") == 1

    def test_pages_keep_their_order(self, tmp_path, pdf_factory):
        batch = pdf_factory("b.pdf", [
            GRADE_COVER,
            grade_page("111", "DUPONT Jean") + "\nfeuille A",
            grade_page("111", "DUPONT Jean") + "\nfeuille B",
        ])
        result = auto_split(batch, tmp_path / "out")

        with fitz.open(result.written[0].path) as doc:
            assert "feuille A" in doc[0].get_text()
            assert "feuille B" in doc[1].get_text()

    def test_missing_fields_use_fallback_names(self, tmp_path, pdf_factory):
        batch = pdf_factory("b.pdf", [
            GRADE_COVER,
            grade_page("111"),
            grade_page(None, "MARTIN Anne"),
        ])
        result = auto_split(batch, tmp_path / "out")

        assert _pdf_names(tmp_path / "out" / "b_par_etudiant") == [
            "martin_numnontrouve.pdf",
            "nomnontrouve_111.pdf",
        ]
        assert result.report.runs_missing_key == ["martin_numnontrouve.pdf"]
        assert result.report.runs_missing_name == ["nomnontrouve_111.pdf"]

    def test_uncompressed_output(self, tmp_path, grade_batch):
        engine = SplitterEngine(SplitterConfig(compress=False))
        result = engine.split(grade_batch, tmp_path / "out")
        assert result.files_written == 2


class TestCertificateSplit:
    """Cover page + two certificate pages."""

    def test_split(self, tmp_path, certificate_batch):
        result = auto_split(certificate_batch, tmp_path / "ignored")

        out_dir = tmp_path / "attestations_attestations"
        assert result.document_type == DocumentType.CERTIFICATE
        assert result.files_written == 2
        assert _pdf_names(out_dir) == ["dupont-98765.pdf", "martin-54321.pdf"]
        assert _page_count(out_dir / "dupont-98765.pdf") == 1
        assert not (tmp_path / "ignored").exists()

    def test_fields_in_separate_text_runs(self, tmp_path):
        batch = tmp_path / "runs.pdf"
        doc = fitz.open()
        doc.new_page().insert_text((50, 72), CERTIFICATE_COVER, fontsize=10)
        page = doc.new_page()
        for y, text in [
            (72, "INE (0A1B2C)98765"),
            (100, "N° étudiant :"),
            (128, "Monsieur Jean DUPONT"),
            (156, "a été décerné à l'issue de l'année"),
        ]:
            page.insert_text((50, y), text, fontsize=10)
        doc.save(str(batch))
        doc.close()

        result = auto_split(batch, tmp_path / "out")

        assert _pdf_names(tmp_path / "runs_attestations") == ["dupont-98765.pdf"]
        assert result.report.placeholder_certificates == []

    def test_cover_only(self, tmp_path, pdf_factory):
        batch = pdf_factory("c.pdf", [CERTIFICATE_COVER])
        result = auto_split(batch, tmp_path / "out")
        assert result.files_written == 0


class TestLogFile:
    """Repeated splits share one file handler per log file."""

    def test_repeated_splits_attach_one_handler(self, tmp_path, grade_batch):
        log_file = tmp_path / "logs" / "aposplit.log"
        config = SplitterConfig(log_file=str(log_file))

        for _ in range(3):
            auto_split(grade_batch, tmp_path / "out", config)

        package_logger = logging.getLogger("aposplit")
        file_handlers = [
            h for h in package_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 1
        file_handlers[0].flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert sum("Starting split of" in line for line in lines) == 3

    def test_distinct_log_files(self, tmp_path, grade_batch):
        for name in ("a.log", "b.log"):
            config = SplitterConfig(log_file=str(tmp_path / name))
            auto_split(grade_batch, tmp_path / "out", config)

        package_logger = logging.getLogger("aposplit")
        assert sorted(
            os.path.basename(h.baseFilename)
            for h in package_logger.handlers
            if isinstance(h, logging.FileHandler)
        ) == ["a.log", "b.log"]


class TestMissingInput:
    """Fatal errors happen before any output directory exists."""

    def test_missing_input(self, tmp_path):
        out = tmp_path / "out"
        with pytest.raises(FileNotFoundError):
            auto_split(tmp_path / "absent.pdf", out)
        assert not out.exists()


# ═══════════════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════════════


class TestCli:
    """Test the click commands."""

    def test_split(self, tmp_path, grade_batch):
        runner = CliRunner()
        out = tmp_path / "out"
        result = runner.invoke(cli, ["split", str(grade_batch), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert _pdf_names(out / "releves_l3_par_etudiant") == [
            "dupont_111.pdf", "martin_222.pdf",
        ]

    def test_split_defaults_to_input_folder(self, tmp_path, grade_batch):
        runner = CliRunner()
        result = runner.invoke(cli, ["split", str(grade_batch)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "releves_l3_par_etudiant").is_dir()

    def test_split_json_output(self, tmp_path, certificate_batch):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["split", str(certificate_batch), "--json-output"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["document_type"] == "certificate"
        assert data["files_written"] == 2

    def test_split_missing_file(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(cli, ["split", str(tmp_path / "absent.pdf")])
        assert result.exit_code != 0

    def test_inspect_writes_nothing(self, tmp_path, grade_batch):
        runner = CliRunner()
        out = tmp_path / "out"
        result = runner.invoke(cli, ["inspect", str(grade_batch), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert "dupont_111.pdf" in result.output
        assert "martin_222.pdf" in result.output
        assert not out.exists()

    def test_info(self, certificate_batch):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", str(certificate_batch)])

        assert result.exit_code == 0, result.output
        assert "certificate" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output
