# signcheck/verification/pair_classifier.py
# PairClassifier -- decides match / signature-only / modified for one pair.
#
# Step 1: whole-file SHA-256 of both files. Equal -> MATCH.
# Step 2: digests differ and file A is not a Mach-O image -> MODIFIED.
# Step 3: region fingerprints of both files. Equal -> SIGNATURE_ONLY.
#         Extraction failure on either file, or different fingerprints
#         -> MODIFIED.
#
# Uncertainty always maps to MODIFIED, never to MATCH or SIGNATURE_ONLY.

import hashlib
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG
from signcheck.exceptions import (
    ComparatorIOError,
    SectionExtractionError,
    SignCheckError,
)
from signcheck.verification.data_models.comparison_report import (
    ClassificationError,
    ClassificationResult,
)
from signcheck.verification.data_models.file_entry import FileEntry
from signcheck.verification.format_sniffer import FormatSniffer
from signcheck.verification.region_hasher import RegionHasher

logger = logging.getLogger(__name__)


def sha256_file(path: Union[str, Path], chunk_size: int = 1024 * 1024) -> str:
    """Return the SHA-256 hex digest of the full file content."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                h.update(chunk)
    except OSError as exc:
        raise ComparatorIOError(str(path), f"cannot read file: {exc}") from exc
    return h.hexdigest()


class PairClassifier:
    """
    Classifies a local/reference file pair.

    Methods:
      classify(path_a, path_b)            -> ClassificationResult
      classify_entry(relative_path, a, b) -> (ClassificationResult, ClassificationError or None)

    classify() raises ComparatorIOError when a whole-file digest cannot be
    computed. classify_entry() never raises a per-file error: it downgrades
    it to MODIFIED and returns the reason.
    """

    def __init__(
        self,
        config:  ComparatorConfig = DEFAULT_COMPARATOR_CONFIG,
        sniffer: Optional[FormatSniffer] = None,
        hasher:  Optional[RegionHasher] = None,
    ):
        self._config  = config
        self._sniffer = sniffer or FormatSniffer(config)
        self._hasher  = hasher or RegionHasher(config)

    def classify(self, path_a: Union[str, Path], path_b: Union[str, Path]) -> ClassificationResult:
        return self._classify(path_a, path_b)[0]

    def classify_entry(
        self,
        relative_path: str,
        local:         FileEntry,
        reference:     FileEntry,
    ) -> Tuple[ClassificationResult, Optional[ClassificationError]]:
        try:
            result, exc = self._classify(local.absolute_path, reference.absolute_path)
        except ComparatorIOError as io_exc:
            result, exc = ClassificationResult.MODIFIED, io_exc

        if exc is None:
            return result, None
        logger.warning("%s: reported as modified: %s", relative_path, exc.message)
        return result, ClassificationError(
            relative_path=relative_path,
            error_type=type(exc).__name__,
            detail=exc.message,
        )

    def _classify(
        self,
        path_a: Union[str, Path],
        path_b: Union[str, Path],
    ) -> Tuple[ClassificationResult, Optional[SignCheckError]]:
        digest_a = sha256_file(path_a, self._config.chunk_size)
        digest_b = sha256_file(path_b, self._config.chunk_size)
        if digest_a == digest_b:
            return ClassificationResult.MATCH, None

        if not self._sniffer.is_executable(path_a):
            logger.debug("%s: content differs, not an executable image", path_a)
            return ClassificationResult.MODIFIED, None

        try:
            fingerprint_a = self._hasher.hash_comparable_content(path_a)
            fingerprint_b = self._hasher.hash_comparable_content(path_b)
        except (SectionExtractionError, ComparatorIOError) as exc:
            logger.debug("Cannot prove equivalence of %s: %s", path_a, exc)
            return ClassificationResult.MODIFIED, exc

        if fingerprint_a == fingerprint_b:
            logger.debug("%s: differs only outside comparable sections", path_a)
            return ClassificationResult.SIGNATURE_ONLY, None

        logger.debug(
            "%s: section fingerprints differ (%s != %s)",
            path_a, fingerprint_a[:16], fingerprint_b[:16],
        )
        return ClassificationResult.MODIFIED, None
