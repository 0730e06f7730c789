# signcheck/verification/data_models/executable_section.py
# Data classes describing the layout of a Mach-O executable image.

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ImageKind(Enum):
    """Result of sniffing the leading magic number of a file."""
    NOT_EXECUTABLE = "not-executable"
    SINGLE_ARCH    = "single-arch"
    FAT_BINARY     = "fat-binary"

    @property
    def is_executable(self) -> bool:
        return self is not ImageKind.NOT_EXECUTABLE


@dataclass(frozen=True)
class ExecutableSection:
    """
    One file-backed section declared by a segment load command.

    Fields:
      segment_name -- Segment the section belongs to, e.g. "__TEXT".
      section_name -- Section name, e.g. "__text".
      file_offset  -- Absolute offset of the section content in the file.
                      For a slice of a fat binary the slice offset is
                      already added.
      byte_size    -- Number of bytes of on-disk content.

    Zero-fill and empty sections are never represented by this class.
    """
    segment_name: str
    section_name: str
    file_offset:  int
    byte_size:    int

    @property
    def end_offset(self) -> int:
        return self.file_offset + self.byte_size

    @property
    def qualified_name(self) -> str:
        return f"{self.segment_name}.{self.section_name}"


@dataclass(frozen=True)
class ArchitectureSlice:
    """
    One per-architecture image.

    A single-architecture file yields exactly one slice with offset 0 that
    spans the whole file. A fat binary yields one slice per fat_arch entry,
    in header order.
    """
    cpu_type:    int
    cpu_subtype: int
    offset:      int
    size:        int
    sections:    Tuple[ExecutableSection, ...]
