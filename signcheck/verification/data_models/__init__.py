from .file_entry import FileEntry
from .executable_section import ArchitectureSlice, ExecutableSection, ImageKind
from .comparison_report import (
    ClassificationError,
    ClassificationResult,
    ComparisonReport,
    Verdict,
)
from .failure_record import FailureRecord, FAILURE_TYPES

__all__ = [
    "FileEntry",
    "ArchitectureSlice",
    "ExecutableSection",
    "ImageKind",
    "ClassificationError",
    "ClassificationResult",
    "ComparisonReport",
    "Verdict",
    "FailureRecord",
    "FAILURE_TYPES",
]
