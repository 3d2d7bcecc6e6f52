"""
Data Models
===========
Pydantic models for page metadata, split results and reports.
All result models are serializable to JSON for the CLI's --json-output mode.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class DocumentType(str, Enum):
    """Template of the batch export, decided once from the cover page."""
    GRADE_REPORT = "grade_report"
    CERTIFICATE = "certificate"


class AnomalyType(str, Enum):
    """Issues noticed on an output file after splitting."""
    MISSING_NAME = "missing_name"
    MISSING_KEY = "missing_key"
    DUPLICATE_KEY = "duplicate_key"
    WRITE_FAILED = "write_failed"
    PLACEHOLDER_METADATA = "placeholder_metadata"


# ─── Page Metadata ────────────────────────────────────────────────────────────


class GradeReportMetadata(BaseModel):
    """
    Fields extracted from one grade transcript page.
    Either field may be missing; a missing key groups the page with
    its neighbours instead of failing.
    """
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    key: Optional[str] = Field(
        default=None,
        description="Student number used as the grouping key",
    )


class CertificateMetadata(BaseModel):
    """
    Fields extracted from one certificate page.
    Always populated: missing values are replaced by a placeholder and
    both are already normalized (no accents, lowercase).
    """
    model_config = ConfigDict(frozen=True)

    name: str
    identifier: str


# ─── Outputs ──────────────────────────────────────────────────────────────────


class OutputFile(BaseModel):
    """A PDF written for one student."""
    path: str
    source_pages: list[int] = Field(
        description="Zero-based page indices copied from the source PDF"
    )
    document_type: DocumentType
    name: Optional[str] = None
    key: Optional[str] = None

    @computed_field
    @property
    def page_count(self) -> int:
        return len(self.source_pages)


class WriteFailure(BaseModel):
    """An output file that could not be persisted."""
    path: str
    source_pages: list[int]
    error: str


class PlannedOutput(BaseModel):
    """A file that a split would write, as computed by a dry run."""
    filename: str
    source_pages: list[int]
    name: Optional[str] = None
    key: Optional[str] = None


class SplitPlan(BaseModel):
    """Dry-run result: what a split would write, without writing it."""
    source_pdf: str
    document_type: DocumentType
    output_dir: str
    total_pages: int = 0
    outputs: list[PlannedOutput] = Field(default_factory=list)


# ─── Report ───────────────────────────────────────────────────────────────────


class RunAnomaly(BaseModel):
    """An issue attached to one output file."""
    type: AnomalyType
    filename: str
    message: str


class SplitReport(BaseModel):
    """Post-split report."""
    total_outputs: int = 0
    written: int = 0
    failed: int = 0
    runs_missing_name: list[str] = Field(default_factory=list)
    runs_missing_key: list[str] = Field(default_factory=list)
    duplicate_keys: list[str] = Field(default_factory=list)
    placeholder_certificates: list[str] = Field(default_factory=list)
    anomalies: list[RunAnomaly] = Field(default_factory=list)
    anomaly_breakdown: dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.total_outputs == 0:
            return 0.0
        return round(self.written / self.total_outputs * 100, 2)


class SplitResult(BaseModel):
    """
    Complete output of a split run.
    `files_written` is the number of PDFs persisted; failed entries are
    kept alongside so callers can retry or report them.
    """
    source_pdf: str
    document_type: DocumentType
    output_dir: str
    total_pages: int = 0
    written: list[OutputFile] = Field(default_factory=list)
    failed: list[WriteFailure] = Field(default_factory=list)
    report: SplitReport = Field(default_factory=SplitReport)
    finished_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @computed_field
    @property
    def files_written(self) -> int:
        return len(self.written)

    @computed_field
    @property
    def files_failed(self) -> int:
        return len(self.failed)
