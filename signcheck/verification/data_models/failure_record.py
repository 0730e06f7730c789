# signcheck/verification/data_models/failure_record.py
# FailureRecord data class and failure type registry.

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# FAILURE TYPE REGISTRY
# ---------------------------------------------------------------------------
# Exit code mapping:
#   Code 1 -- VERIFICATION_FAILED (modified or missing files)
#   Code 2 -- CHECKSUM_MISMATCH (reference archive cannot be trusted)
#   Code 3 -- lookup, download, extraction or invocation failures
#   Code 4 -- Internal errors
#
# COMPARATOR_IO_ERROR and SECTION_EXTRACTION_ERROR only reach the registry
# when they are raised outside per-file classification (e.g. a bundle root
# that is not a directory).

FAILURE_TYPES = {
    # Exit Code 1
    "VERIFICATION_FAILED":        1,
    # Exit Code 2
    "CHECKSUM_MISMATCH":          2,
    # Exit Code 3
    "INDEX_LOOKUP_FAILURE":       3,
    "DOWNLOAD_FAILURE":           3,
    "ARCHIVE_EXTRACTION_FAILURE": 3,
    "COMPARATOR_IO_ERROR":        3,
    "SECTION_EXTRACTION_ERROR":   3,
    "CONTRACT_VIOLATION":         3,
    # Exit Code 4
    "HARNESS_INTERNAL_ERROR":     4,
}


@dataclass
class FailureRecord:
    """
    Failure record written to disk by the FailureHandler on a fatal error.

    All fields are mandatory. Written as JSON to the runs directory.

    Fields:
      failure_type_id  -- Key from FAILURE_TYPES registry.
      exit_code        -- Integer exit code (1-4).
      subject          -- File, URL or version the failure refers to.
                          Empty if not applicable.
      detected_at_iso  -- UTC ISO-8601 timestamp of failure detection.
      run_id           -- Run identifier for this invocation.
      tool_version     -- signcheck __version__ at time of failure.
      detail           -- Human-readable failure description.
    """
    failure_type_id: str
    exit_code:       int
    subject:         str
    detected_at_iso: str
    run_id:          str
    tool_version:    str
    detail:          str
