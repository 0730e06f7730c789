# signcheck/__init__.py
# Verifies that a re-signed application bundle carries the same code and
# data as its unsigned reference build.

from .version import __version__
from .config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG, FetchConfig
from .exceptions import (
    ArchiveExtractionError,
    ChecksumMismatchError,
    ComparatorIOError,
    DownloadError,
    IndexLookupError,
    SectionExtractionError,
    SignCheckError,
)

__all__ = [
    "__version__",
    "ComparatorConfig",
    "DEFAULT_COMPARATOR_CONFIG",
    "FetchConfig",
    "ArchiveExtractionError",
    "ChecksumMismatchError",
    "ComparatorIOError",
    "DownloadError",
    "IndexLookupError",
    "SectionExtractionError",
    "SignCheckError",
]
