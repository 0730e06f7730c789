#!/usr/bin/env python3
# =============================================================================
# signcheck -- CI CHECKS RUNNER
# File:   scripts/run_ci_checks.py
# =============================================================================
#
# PURPOSE
# -------
# Runs the CI checks in two sequential stages:
#   Stage 1: pytest (all tests + coverage report for the signcheck package)
#   Stage 2: release gate (verifies SIGNCHECK_LOCAL_ARCHIVE against the
#            reference build). Skipped when SIGNCHECK_LOCAL_ARCHIVE is unset.
#
# Exit codes:
#   0 -- All stages passed (or stage 2 was skipped).
#   1 -- Stage 1 (pytest) failed.
#   2 -- Stage 2 (release gate) failed.
#
# Usage:
#   python scripts/run_ci_checks.py
#   SIGNCHECK_LOCAL_ARCHIVE=dist/cefclient.zip python scripts/run_ci_checks.py
# =============================================================================

from __future__ import annotations

import os
import pathlib
import subprocess
import sys

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_REPO_ROOT = pathlib.Path(__file__).parent.parent
_PYTHON    = sys.executable


def _separator(char: str = "=", width: int = 72) -> str:
    return char * width


def _run(cmd: list[str], label: str) -> int:
    """
    Run a subprocess command, stream stdout/stderr live, return exit code.
    """
    print(_separator())
    print(f"CI STAGE: {label}")
    print(f"CMD:      {' '.join(cmd)}")
    print(_separator("-"))
    sys.stdout.flush()

    proc = subprocess.run(cmd, cwd=str(_REPO_ROOT))
    return proc.returncode


def _fail(stage: str, rc: int, reason: str) -> None:
    print(_separator())
    print(f"CI RESULT: FAIL  [stage={stage}  exit_code={rc}]")
    print(f"Release BLOCKED: {reason}")
    print(_separator())
    sys.stdout.flush()


def main() -> int:
    print(_separator())
    print("signcheck CI -- starting")
    print(_separator())
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 1: pytest
    # ------------------------------------------------------------------
    pytest_rc = _run(
        [_PYTHON, "-m", "pytest", "--cov=signcheck", "--cov-report=term-missing"],
        "pytest (tests + coverage)",
    )
    if pytest_rc != 0:
        _fail("pytest", pytest_rc, "pytest stage did not pass.")
        return 1

    print(_separator("-"))
    print("CI STAGE pytest: PASS")
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 2: release gate
    # ------------------------------------------------------------------
    stages = "pytest"
    if os.getenv("SIGNCHECK_LOCAL_ARCHIVE"):
        gate_rc = _run(
            [_PYTHON, "-m", "signcheck.verification.ci_gate"],
            "release gate (signature-only differences allowed)",
        )
        if gate_rc != 0:
            _fail("gate", gate_rc, "local build differs from the reference build.")
            return 2
        print(_separator("-"))
        print("CI STAGE gate: PASS")
        stages = "pytest,gate"
    else:
        print(_separator("-"))
        print("CI STAGE gate: SKIPPED (SIGNCHECK_LOCAL_ARCHIVE not set)")

    print(_separator())
    print(f"CI RESULT: PASS  [stages={stages}]")
    print(_separator())
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
