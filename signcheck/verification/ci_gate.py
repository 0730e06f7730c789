#!/usr/bin/env python3
# =============================================================================
# signcheck -- CI GATE
# File:   signcheck/verification/ci_gate.py
# =============================================================================
#
# PURPOSE
# -------
# CI enforcement script. Runs a verification and exits with code 0 (PASS)
# or 1 (FAIL / ERROR).
#
# Inputs are read from the environment:
#   SIGNCHECK_LOCAL_ARCHIVE   -- re-signed archive to verify (required)
#   SIGNCHECK_VERSION         -- version to look up (optional)
#   SIGNCHECK_REFERENCE_ARCHIVE -- reference archive on disk (optional)
#
# Invocation:
#   python -m signcheck.verification.ci_gate
#
# Exit codes:
#   0 -- Verification PASS. Release permitted.
#   1 -- Verification FAIL or ERROR. CI must block the release.
# =============================================================================

from __future__ import annotations

import os
import sys

from signcheck import run_verify


def build_argv() -> list[str] | None:
    local_archive = os.getenv("SIGNCHECK_LOCAL_ARCHIVE")
    if not local_archive:
        return None
    argv = [local_archive]
    version = os.getenv("SIGNCHECK_VERSION")
    if version:
        argv.append(version)
    reference_archive = os.getenv("SIGNCHECK_REFERENCE_ARCHIVE")
    if reference_archive:
        argv.extend(["--reference-archive", reference_archive])
    return argv


def main() -> int:
    """
    Run the verification and return the gate exit code.

    Returns:
        0 if the verification result is PASS.
        1 otherwise, including fatal errors and exceptions.
    """
    argv = build_argv()
    if argv is None:
        print("CI-GATE ERROR: SIGNCHECK_LOCAL_ARCHIVE is not set.", file=sys.stderr)
        return 1

    try:
        result = run_verify.main(argv)
    except SystemExit as exc:
        result = exc.code if isinstance(exc.code, int) else 1
    except Exception as exc:  # noqa: BLE001
        print(f"CI-GATE EXCEPTION: {exc}", file=sys.stderr)
        return 1

    if result == 0:
        print("CI-GATE: verification result=PASS. Release permitted.")
        return 0
    print(f"CI-GATE: verification result={result}. Release BLOCKED.", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
