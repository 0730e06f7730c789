# signcheck/verification/failure_handler.py
# FailureHandler -- fatal error policy for a verification run.
#
# Archive-level errors (checksum mismatch, index lookup, download,
# extraction) abort the run. Comparison must never proceed against
# unverified content.
#
# FH-01: Exit with the registered non-zero exit code.
# FH-02: sys.exit is the last operation.
# FH-03: If a runs directory is configured, a FailureRecord JSON is written.
# FH-04: If writing the record fails, write partial info to stderr and exit 4.
# FH-05: A FAIL verdict is not fatal. It is recorded like a failure, but the
#        exit code is returned so the caller can finish reporting first.

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from signcheck.exceptions import SignCheckError
from signcheck.version import __version__
from signcheck.verification.data_models.failure_record import FailureRecord, FAILURE_TYPES

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FailureHandler:
    """
    Enforces the fatal error policy.

    On a fatal error:
      1. Construct FailureRecord.
      2. Write FailureRecord JSON to the runs directory, if one is set.
      3. Print failure summary to stdout.
      4. Call sys.exit(exit_code).
    """

    def __init__(self, run_id: str, runs_dir: Optional[Path] = None):
        self._run_id   = run_id
        self._runs_dir = runs_dir

    def build_record(self, failure_type_id: str, detail: str, subject: str = "") -> FailureRecord:
        return FailureRecord(
            failure_type_id=failure_type_id,
            exit_code=FAILURE_TYPES.get(failure_type_id, 4),
            subject=subject,
            detected_at_iso=_now_iso(),
            run_id=self._run_id,
            tool_version=__version__,
            detail=detail,
        )

    def write_record(self, record: FailureRecord) -> Optional[Path]:
        """Write record to the runs directory; None when no directory is set."""
        if self._runs_dir is None:
            return None
        self._runs_dir.mkdir(parents=True, exist_ok=True)
        ts_compact = record.detected_at_iso.replace(":", "").replace("-", "").replace("+", "Z")[:16]
        filepath   = self._runs_dir / f"{self._run_id}_FAIL_{ts_compact}.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(asdict(record), f, indent=4)
        return filepath

    def handle(self, failure_type_id: str, detail: str, subject: str = "") -> None:
        """Execute the fatal error policy. This method does not return."""
        record = self.build_record(failure_type_id, detail, subject)
        logger.error("%s: %s", failure_type_id, detail)

        try:
            filepath = self.write_record(record)
            written  = f"\nRecord written: {filepath}" if filepath else ""

            print(
                f"VERIFICATION RESULT: ERROR\n"
                f"Failure type:   {failure_type_id}\n"
                f"Exit code:      {record.exit_code}\n"
                f"Subject:        {subject or '(not applicable)'}\n"
                f"Detail:         {detail[:500]}"
                f"{written}"
            )

        except OSError as exc:
            sys.stderr.write(
                f"HARNESS_INTERNAL_ERROR: FailureHandler failed to write record: {exc}\n"
                f"Original failure: {failure_type_id} -- {detail}\n"
            )
            sys.exit(4)

        sys.exit(record.exit_code)

    def record_verification_failure(self, detail: str, subject: str = "") -> int:
        """
        Record a FAIL verdict and return the VERIFICATION_FAILED exit code.
        Only a failure to write the record exits (code 4).
        """
        record = self.build_record("VERIFICATION_FAILED", detail, subject)
        logger.warning("VERIFICATION_FAILED: %s", detail)
        try:
            filepath = self.write_record(record)
        except OSError as exc:
            sys.stderr.write(
                f"HARNESS_INTERNAL_ERROR: FailureHandler failed to write record: {exc}\n"
                f"Original failure: VERIFICATION_FAILED -- {detail}\n"
            )
            sys.exit(4)
        if filepath is not None:
            print(f"Record written: {filepath}")
        return record.exit_code

    def handle_from_exception(self, exc: Exception) -> None:
        """
        Map an exception onto a failure type id and invoke handle().

        SignCheckError subclasses carry their own failure_type_id; anything
        else is an internal error.
        """
        if isinstance(exc, SignCheckError):
            self.handle(exc.failure_type_id, exc.message, exc.path)
        else:
            logger.debug("Unexpected error", exc_info=exc)
            self.handle("HARNESS_INTERNAL_ERROR", f"{type(exc).__name__}: {exc}")
