# =============================================================================
# signcheck -- EXCEPTION HIERARCHY
# File:   signcheck/exceptions.py
# =============================================================================
#
# SCOPE
# -----
# Defines every exception raised by the comparator and by the fetch layer.
# All exceptions are pure value objects: no side effects, no logging,
# no I/O of any kind.
#
# EXCEPTION HIERARCHY
# -------------------
#   SignCheckError(Exception)                     -- base; never raised directly
#     ComparatorIOError(SignCheckError)           -- unreadable / truncated file
#     SectionExtractionError(SignCheckError)      -- section table unusable
#     ChecksumMismatchError(SignCheckError)       -- archive digest mismatch
#     IndexLookupError(SignCheckError)            -- no build for a version
#     DownloadError(SignCheckError)               -- HTTP failure
#     ArchiveExtractionError(SignCheckError)      -- archive or bundle unusable
#
# SEVERITY
# --------
# ComparatorIOError and SectionExtractionError are per-file: the classifier
# catches them and reports the pair as modified.
# The remaining four are run-level: they abort the run through FailureHandler.
#
# MESSAGE CONTRACT
# ----------------
# Every message is derived exclusively from constructor arguments and always
# starts with the class name, so FailureHandler.handle_from_exception() can
# map it back to a failure type id.
#
# =============================================================================

from __future__ import annotations

from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class SignCheckError(Exception):
    """
    Base class for all signcheck exceptions.

    Never raised directly. Use a concrete subclass.

    Attributes:
        message:  Human-readable description. Always non-empty.
        path:     File, directory or URL the error refers to, or empty string.
    """

    failure_type_id: str = "HARNESS_INTERNAL_ERROR"

    def __init__(self, message: str, path: str = "") -> None:
        if not isinstance(message, str) or not message:
            raise ValueError(
                "SignCheckError: message must be a non-empty string"
            )
        super().__init__(message)
        self.message: str = message
        self.path:    str = str(path)

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(message=" + repr(self.message)
            + ", path=" + repr(self.path)
            + ")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignCheckError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.message == other.message
            and self.path == other.path
        )

    __hash__ = Exception.__hash__


# =============================================================================
# PER-FILE EXCEPTIONS
# =============================================================================

class ComparatorIOError(SignCheckError):
    """
    Raised when a file cannot be read, is truncated, or a declared section
    extends past end-of-file.

    Message format:
        "ComparatorIOError: <path>: <reason>"
    """

    failure_type_id = "COMPARATOR_IO_ERROR"

    def __init__(self, path: str, reason: str) -> None:
        if not reason:
            raise ValueError("ComparatorIOError: reason must be non-empty")
        super().__init__(
            message="ComparatorIOError: " + str(path) + ": " + reason,
            path=str(path),
        )
        self.reason: str = reason


class SectionExtractionError(SignCheckError):
    """
    Raised when an executable image's load-command table cannot be parsed,
    or when no comparable section survives filtering.

    Message format:
        "SectionExtractionError: <path>: <reason>"
    """

    failure_type_id = "SECTION_EXTRACTION_ERROR"

    def __init__(self, path: str, reason: str) -> None:
        if not reason:
            raise ValueError("SectionExtractionError: reason must be non-empty")
        super().__init__(
            message="SectionExtractionError: " + str(path) + ": " + reason,
            path=str(path),
        )
        self.reason: str = reason


# =============================================================================
# RUN-LEVEL EXCEPTIONS
# =============================================================================

class ChecksumMismatchError(SignCheckError):
    """
    Raised when a downloaded archive does not hash to the expected digest.
    The archive must not be extracted.

    Message format:
        "ChecksumMismatchError: <path>: expected <expected>, got <actual>"
    """

    failure_type_id = "CHECKSUM_MISMATCH"

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(
            message=(
                "ChecksumMismatchError: " + str(path)
                + ": expected " + expected
                + ", got " + actual
            ),
            path=str(path),
        )
        self.expected: str = expected
        self.actual:   str = actual


class IndexLookupError(SignCheckError):
    """
    Raised when the remote build index holds no client distribution for the
    requested version.

    Message format:
        "IndexLookupError: no build found for version '<version>' in <index_url>"
    """

    failure_type_id = "INDEX_LOOKUP_FAILURE"

    def __init__(self, version: str, index_url: str) -> None:
        super().__init__(
            message=(
                "IndexLookupError: no build found for version '"
                + version + "' in " + index_url
            ),
            path=index_url,
        )
        self.version: str = version


class DownloadError(SignCheckError):
    """
    Raised when an HTTP request for the index or an archive fails.

    Message format:
        "DownloadError: <url>: <reason>"
    """

    failure_type_id = "DOWNLOAD_FAILURE"

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(
            message="DownloadError: " + url + ": " + reason,
            path=url,
        )
        self.status_code: Optional[int] = status_code


class ArchiveExtractionError(SignCheckError):
    """
    Raised when an archive cannot be extracted, or when the expected bundle
    directory is not present in the extracted tree.

    Message format:
        "ArchiveExtractionError: <path>: <reason>"
    """

    failure_type_id = "ARCHIVE_EXTRACTION_FAILURE"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            message="ArchiveExtractionError: " + str(path) + ": " + reason,
            path=str(path),
        )
        self.reason: str = reason


__all__ = [
    "SignCheckError",
    "ComparatorIOError",
    "SectionExtractionError",
    "ChecksumMismatchError",
    "IndexLookupError",
    "DownloadError",
    "ArchiveExtractionError",
]
