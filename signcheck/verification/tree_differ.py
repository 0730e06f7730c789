# signcheck/verification/tree_differ.py
# TreeDiffer -- compares a local bundle tree against a reference bundle tree.
#
# 1. Enumerate regular files under both roots (relative paths, POSIX form).
#    Directories are traversed, not recorded. Symlinks are neither followed
#    nor recorded.
# 2. missing_in_local = R - L, missing_in_original = L - R, both without
#    signature artifacts.
# 3. Every non-excluded path present in both trees is classified.
# 4. Excluded paths present in both trees are never classified.
#
# Single-threaded unless max_workers > 1. The unit of concurrency is one
# relative path; ReportAggregator serializes bucket appends.

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional, Union

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG
from signcheck.exceptions import ComparatorIOError
from signcheck.verification.data_models.comparison_report import ComparisonReport
from signcheck.verification.data_models.file_entry import FileEntry
from signcheck.verification.exclusion_filter import ExclusionFilter
from signcheck.verification.pair_classifier import PairClassifier
from signcheck.verification.report_aggregator import ReportAggregator

logger = logging.getLogger(__name__)


def enumerate_files(root: Union[str, Path]) -> Dict[str, FileEntry]:
    """
    Map relative path -> FileEntry for every regular file under root.

    Raises ComparatorIOError if root is not a directory or a directory
    below it cannot be listed.
    """
    root = Path(root)
    if not root.is_dir():
        raise ComparatorIOError(str(root), "bundle root is not a directory")

    def _on_error(exc: OSError) -> None:
        raise ComparatorIOError(str(exc.filename or root), f"cannot list directory: {exc}")

    entries: Dict[str, FileEntry] = {}
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            absolute = Path(dirpath) / name
            if absolute.is_symlink() or not absolute.is_file():
                continue
            relative = absolute.relative_to(root).as_posix()
            entries[relative] = FileEntry(relative_path=relative, absolute_path=absolute)
    return entries


class TreeDiffer:
    """
    Produces a ComparisonReport for two extracted bundle trees.

    Method:
      diff(local_root, reference_root) -> ComparisonReport
    """

    def __init__(
        self,
        config:           ComparatorConfig = DEFAULT_COMPARATOR_CONFIG,
        exclusion_filter: Optional[ExclusionFilter] = None,
        classifier:       Optional[PairClassifier] = None,
        max_workers:      int = 1,
    ):
        if max_workers < 1:
            raise ValueError(f"TreeDiffer: max_workers must be >= 1, got {max_workers}")
        self._filter      = exclusion_filter or ExclusionFilter(config=config)
        self._classifier  = classifier or PairClassifier(config)
        self._max_workers = max_workers

    def diff(self, local_root: Union[str, Path], reference_root: Union[str, Path]) -> ComparisonReport:
        local     = enumerate_files(local_root)
        reference = enumerate_files(reference_root)
        logger.info(
            "Comparing %d local file(s) against %d reference file(s)",
            len(local), len(reference),
        )

        aggregator = ReportAggregator()
        aggregator.record_missing_in_local(
            self._filter.filter_paths(sorted(reference.keys() - local.keys()))
        )
        aggregator.record_missing_in_original(
            self._filter.filter_paths(sorted(local.keys() - reference.keys()))
        )

        common = self._filter.filter_paths(sorted(local.keys() & reference.keys()))

        def _classify(relative_path: str) -> None:
            result, error = self._classifier.classify_entry(
                relative_path, local[relative_path], reference[relative_path],
            )
            logger.debug("%s: %s", relative_path, result.value)
            aggregator.record(relative_path, result, error)

        if self._max_workers == 1:
            for relative_path in common:
                _classify(relative_path)
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                # list() re-raises the first unexpected exception from a worker.
                list(pool.map(_classify, common))

        report = aggregator.finalize()
        logger.info(
            "Compared %d file(s): %d matched, %d signature-only, %d modified, "
            "%d missing locally, %d extra locally",
            report.compared_count, report.matched_count, len(report.signature_only),
            len(report.modified), len(report.missing_in_local), len(report.missing_in_original),
        )
        return report
