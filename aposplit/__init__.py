"""
aposplit
========
Splits academic records batch exports (grade transcripts or completion
certificates) into one PDF per student.

Architecture:
    - Page Source: PyMuPDF-backed page count / text / page copy
    - Classifier: Detects the document template from the cover page
    - Extractors: Pull student name and number out of page text
    - Segmenter: Groups consecutive pages by student number
    - Writer: Materializes each group as its own PDF
    - Validator: Reports missing fields, duplicates and write failures

Version: 1.0.0
"""

__version__ = "1.0.0"

from .engine import SplitterConfig, SplitterEngine, auto_split  # noqa: E402

__all__ = [
    "SplitterConfig",
    "SplitterEngine",
    "auto_split",
    "__version__",
]
