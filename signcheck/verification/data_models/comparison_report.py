# signcheck/verification/data_models/comparison_report.py
# Classification result enum and the ComparisonReport produced by the
# TreeDiffer.

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ClassificationResult(Enum):
    """Outcome of comparing one file pair."""
    MATCH          = "match"
    SIGNATURE_ONLY = "signature-only"
    MODIFIED       = "modified"


class Verdict(Enum):
    PASS = "PASS"
    FAIL = "FAIL"


@dataclass(frozen=True)
class ClassificationError:
    """
    A per-file error that was downgraded to MODIFIED.

    The path is also present in ComparisonReport.modified; this record only
    keeps the reason for the human-readable breakdown.
    """
    relative_path: str
    error_type:    str    # exception class name
    detail:        str


@dataclass(frozen=True)
class ComparisonReport:
    """
    Final result of comparing a local bundle against a reference bundle.

    Fields:
      matched_count       -- Pairs whose whole-file digests are equal.
      modified            -- Pairs whose content differs outside the
                             signature regions, or could not be proven equal.
      signature_only      -- Executable pairs equal in all comparable sections.
      missing_in_local    -- Present in the reference tree only.
      missing_in_original -- Present in the local tree only.
      errors              -- Reasons for MODIFIED entries caused by errors.

    All path tuples are sorted. Signature artifacts never appear in them.
    """
    matched_count:       int
    modified:            Tuple[str, ...]
    signature_only:      Tuple[str, ...]
    missing_in_local:    Tuple[str, ...]
    missing_in_original: Tuple[str, ...]
    errors:              Tuple[ClassificationError, ...] = ()

    @property
    def compared_count(self) -> int:
        """Number of pairs that went through classification."""
        return self.matched_count + len(self.signature_only) + len(self.modified)

    @property
    def passed(self) -> bool:
        return not self.missing_in_local and not self.modified
