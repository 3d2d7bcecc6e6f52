"""
Validation Engine
=================
Post-split validation and reporting.

After splitting each PDF, summarizes:
    - Files Planned / Written / Failed
    - Runs Missing a Name
    - Runs Missing a Student Number
    - Student Numbers Split Across Several Files
    - Certificates Written With Placeholder Metadata
    - Anomaly breakdown by type

Never silently ignores failures.
"""

from __future__ import annotations

import logging
import os
from collections import Counter

from .extractors import NOT_AVAILABLE
from .models import (
    AnomalyType,
    DocumentType,
    RunAnomaly,
    SplitReport,
    SplitResult,
)

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Inspects a SplitResult and produces a SplitReport.
    """

    def validate(self, result: SplitResult) -> SplitReport:
        """
        Run all checks on a finished split.

        Args:
            result: The split to check. Its `report` field is not modified.

        Returns:
            SplitReport with all detected issues.
        """
        report = SplitReport(
            total_outputs=len(result.written) + len(result.failed),
            written=len(result.written),
            failed=len(result.failed),
        )

        if report.total_outputs == 0:
            logger.warning(f"No output produced for {result.source_pdf}")
            return report

        for output in result.written:
            filename = os.path.basename(output.path)

            if result.document_type == DocumentType.GRADE_REPORT:
                if not output.name:
                    report.runs_missing_name.append(filename)
                    report.anomalies.append(RunAnomaly(
                        type=AnomalyType.MISSING_NAME,
                        filename=filename,
                        message="No student name found on these pages",
                    ))
                if not output.key:
                    report.runs_missing_key.append(filename)
                    report.anomalies.append(RunAnomaly(
                        type=AnomalyType.MISSING_KEY,
                        filename=filename,
                        message="No student number found on these pages",
                    ))
            elif NOT_AVAILABLE in (output.name, output.key):
                report.placeholder_certificates.append(filename)
                report.anomalies.append(RunAnomaly(
                    type=AnomalyType.PLACEHOLDER_METADATA,
                    filename=filename,
                    message="Certificate name or number not found",
                ))

        key_counts = Counter(
            output.key
            for output in result.written
            if output.key and output.key != NOT_AVAILABLE
        )
        report.duplicate_keys = sorted(
            key for key, count in key_counts.items() if count > 1
        )
        for key in report.duplicate_keys:
            report.anomalies.append(RunAnomaly(
                type=AnomalyType.DUPLICATE_KEY,
                filename=key,
                message=f"Student number {key} spans several files",
            ))

        for failure in result.failed:
            report.anomalies.append(RunAnomaly(
                type=AnomalyType.WRITE_FAILED,
                filename=os.path.basename(failure.path),
                message=failure.error,
            ))

        report.anomaly_breakdown = dict(
            Counter(a.type.value for a in report.anomalies)
        )

        # Log summary
        logger.info("=" * 60)
        logger.info("SPLIT REPORT")
        logger.info("=" * 60)
        logger.info(f"Files Planned: {report.total_outputs}")
        logger.info(
            f"Files Written: {report.written} ({report.success_rate}%)"
        )
        logger.info(f"Files Failed: {report.failed}")
        logger.info(f"Runs Missing Name: {len(report.runs_missing_name)}")
        logger.info(
            f"Runs Missing Student Number: {len(report.runs_missing_key)}"
        )
        logger.info(f"Duplicate Student Numbers: {len(report.duplicate_keys)}")
        logger.info(
            f"Placeholder Certificates: {len(report.placeholder_certificates)}"
        )

        if report.anomaly_breakdown:
            logger.info("Anomaly Breakdown:")
            for anomaly_type, count in sorted(report.anomaly_breakdown.items()):
                logger.info(f"  • {anomaly_type}: {count}")

        logger.info("=" * 60)

        return report
