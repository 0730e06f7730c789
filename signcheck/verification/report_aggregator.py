# signcheck/verification/report_aggregator.py
# ReportAggregator -- accumulates per-file classifications into a
# ComparisonReport, and derives the pass/fail verdict.
#
# record() appends under a lock so classifications may arrive from worker
# threads. finalize() sorts every bucket: the report is identical whatever
# order the classifications arrived in.

import threading
from typing import Iterable, List, Optional

from signcheck.verification.data_models.comparison_report import (
    ClassificationError,
    ClassificationResult,
    ComparisonReport,
    Verdict,
)


def verdict(report: ComparisonReport) -> Verdict:
    """
    PASS iff nothing is missing locally and nothing was modified.
    Extra local files and signature-only differences never fail.
    """
    return Verdict.PASS if report.passed else Verdict.FAIL


class ReportAggregator:
    """Thread-safe builder for ComparisonReport."""

    def __init__(self) -> None:
        self._lock                = threading.Lock()
        self._matched_count       = 0
        self._modified:            List[str] = []
        self._signature_only:      List[str] = []
        self._missing_in_local:    List[str] = []
        self._missing_in_original: List[str] = []
        self._errors:              List[ClassificationError] = []

    def record(
        self,
        relative_path: str,
        result:        ClassificationResult,
        error:         Optional[ClassificationError] = None,
    ) -> None:
        with self._lock:
            if result is ClassificationResult.MATCH:
                self._matched_count += 1
            elif result is ClassificationResult.SIGNATURE_ONLY:
                self._signature_only.append(relative_path)
            else:
                self._modified.append(relative_path)
            if error is not None:
                self._errors.append(error)

    def record_missing_in_local(self, relative_paths: Iterable[str]) -> None:
        with self._lock:
            self._missing_in_local.extend(relative_paths)

    def record_missing_in_original(self, relative_paths: Iterable[str]) -> None:
        with self._lock:
            self._missing_in_original.extend(relative_paths)

    def finalize(self) -> ComparisonReport:
        with self._lock:
            return ComparisonReport(
                matched_count=self._matched_count,
                modified=tuple(sorted(self._modified)),
                signature_only=tuple(sorted(self._signature_only)),
                missing_in_local=tuple(sorted(self._missing_in_local)),
                missing_in_original=tuple(sorted(self._missing_in_original)),
                errors=tuple(sorted(self._errors, key=lambda e: e.relative_path)),
            )
