# signcheck/verification/format_sniffer.py
# FormatSniffer -- classifies a file by its leading magic number.
#
# Reads exactly four bytes. Never raises on file content or I/O errors:
# NOT_EXECUTABLE is the normal answer for resources, plists and images.

import logging
import struct
from pathlib import Path
from typing import Optional, Union

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG
from signcheck.verification.data_models.executable_section import ImageKind

logger = logging.getLogger(__name__)


def read_magic(path: Union[str, Path]) -> Optional[int]:
    """
    Return the first four bytes of path as a little-endian u32, or None if
    the file is shorter than four bytes or cannot be read.
    """
    try:
        with open(path, "rb") as f:
            head = f.read(4)
    except OSError as exc:
        logger.debug("Cannot read magic of %s: %s", path, exc)
        return None
    if len(head) < 4:
        return None
    return struct.unpack("<I", head)[0]


class FormatSniffer:
    """
    Maps a file's magic number onto an ImageKind.

    Method:
      classify(path) -> ImageKind
    """

    def __init__(self, config: ComparatorConfig = DEFAULT_COMPARATOR_CONFIG):
        self._config = config

    def classify_magic(self, magic: Optional[int]) -> ImageKind:
        if magic is None:
            return ImageKind.NOT_EXECUTABLE
        if magic in self._config.single_arch_magics:
            return ImageKind.SINGLE_ARCH
        if magic in self._config.fat_magics:
            return ImageKind.FAT_BINARY
        return ImageKind.NOT_EXECUTABLE

    def classify(self, path: Union[str, Path]) -> ImageKind:
        return self.classify_magic(read_magic(path))

    def is_executable(self, path: Union[str, Path]) -> bool:
        return self.classify(path).is_executable
