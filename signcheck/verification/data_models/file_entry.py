# signcheck/verification/data_models/file_entry.py
# FileEntry data class. One regular file inside an extracted bundle.

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class FileEntry:
    """
    A regular file addressed relative to its bundle root.

    Fields:
      relative_path -- POSIX-style path relative to the bundle root.
                       Used as the matching key between the two trees.
      absolute_path -- Location on disk. Only used while the pair is read.
    """
    relative_path: str
    absolute_path: Path
