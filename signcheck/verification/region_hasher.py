# signcheck/verification/region_hasher.py
# RegionHasher -- SHA-256 fingerprint of the comparable sections of an image.
#
# The file is opened once. Each section is read at its absolute offset for
# exactly byte_size bytes and fed to one streaming digest, in table order.
# A short read means the declared section runs past end-of-file: the
# artifact is truncated or malformed and ComparatorIOError is raised.
#
# Fat binaries: every slice is hashed on its own. The file fingerprint is the
# SHA-256 of (cpu_type, cpu_subtype, slice digest) for each slice in
# fat-table order.

import hashlib
import logging
import struct
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG
from signcheck.exceptions import ComparatorIOError
from signcheck.verification.data_models.executable_section import (
    ArchitectureSlice,
    ExecutableSection,
)
from signcheck.verification.section_extractor import SectionExtractor

logger = logging.getLogger(__name__)

_READ_BLOCK = 1024 * 1024


def _feed_section(
    digest:  "hashlib._Hash",
    f:       BinaryIO,
    section: ExecutableSection,
    path:    Union[str, Path],
) -> None:
    f.seek(section.file_offset)
    remaining = section.byte_size
    while remaining > 0:
        block = f.read(min(remaining, _READ_BLOCK))
        if not block:
            raise ComparatorIOError(
                str(path),
                f"section {section.qualified_name} (offset {section.file_offset}, "
                f"size {section.byte_size}) extends past end of file",
            )
        digest.update(block)
        remaining -= len(block)


class RegionHasher:
    """
    Computes signature-invariant fingerprints of Mach-O images.

    Methods:
      hash_slices(path)             -> tuple of (ArchitectureSlice, hex digest)
      hash_comparable_content(path) -> hex digest for the whole file
    """

    def __init__(
        self,
        config:    ComparatorConfig = DEFAULT_COMPARATOR_CONFIG,
        extractor: Optional[SectionExtractor] = None,
    ):
        self._extractor = extractor or SectionExtractor(config)

    def hash_slices(self, path: Union[str, Path]) -> Tuple[Tuple[ArchitectureSlice, str], ...]:
        slices = self._extractor.extract_slices(path)
        results = []
        try:
            with open(path, "rb") as f:
                for arch_slice in slices:
                    digest = hashlib.sha256()
                    for section in arch_slice.sections:
                        _feed_section(digest, f, section, path)
                    results.append((arch_slice, digest.hexdigest()))
        except OSError as exc:
            raise ComparatorIOError(str(path), f"cannot read sections: {exc}") from exc
        return tuple(results)

    def hash_comparable_content(self, path: Union[str, Path]) -> str:
        """
        Return the SHA-256 hex fingerprint of all comparable sections.

        Raises SectionExtractionError from the extractor, or ComparatorIOError
        if a section cannot be read in full.
        """
        slice_digests = self.hash_slices(path)
        if len(slice_digests) == 1 and slice_digests[0][0].offset == 0:
            return slice_digests[0][1]

        combined = hashlib.sha256()
        for arch_slice, hex_digest in slice_digests:
            combined.update(struct.pack(">ii", arch_slice.cpu_type, arch_slice.cpu_subtype))
            combined.update(bytes.fromhex(hex_digest))
        return combined.hexdigest()
