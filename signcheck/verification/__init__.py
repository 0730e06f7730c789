# signcheck/verification/__init__.py
# Binary Integrity Comparator.
#
# ENTRY POINT:
#   python -m signcheck.run_verify LOCAL_ARCHIVE [VERSION]
#
# CI GATE:
#   python -m signcheck.verification.ci_gate

from pathlib import Path
from typing import Union

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG
from .data_models import (
    ArchitectureSlice,
    ClassificationError,
    ClassificationResult,
    ComparisonReport,
    ExecutableSection,
    FileEntry,
    ImageKind,
    Verdict,
)
from .exclusion_filter import ExclusionFilter
from .failure_handler import FailureHandler
from .format_sniffer import FormatSniffer
from .pair_classifier import PairClassifier
from .region_hasher import RegionHasher
from .report_aggregator import ReportAggregator, verdict
from .report_serializer import ReportSerializer
from .section_extractor import SectionExtractor
from .tree_differ import TreeDiffer


def diff(
    local_root:     Union[str, Path],
    reference_root: Union[str, Path],
    config:         ComparatorConfig = DEFAULT_COMPARATOR_CONFIG,
    max_workers:    int = 1,
) -> ComparisonReport:
    """Compare a local bundle tree against a reference bundle tree."""
    return TreeDiffer(config, max_workers=max_workers).diff(local_root, reference_root)


__all__ = [
    # Data models
    "ArchitectureSlice",
    "ClassificationError",
    "ClassificationResult",
    "ComparisonReport",
    "ExecutableSection",
    "FileEntry",
    "ImageKind",
    "Verdict",
    # Pipeline components
    "ExclusionFilter",
    "FailureHandler",
    "FormatSniffer",
    "PairClassifier",
    "RegionHasher",
    "ReportAggregator",
    "ReportSerializer",
    "SectionExtractor",
    "TreeDiffer",
    # Entry points
    "diff",
    "verdict",
]
