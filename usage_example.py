# usage_example.py
# Minimal usage example for signcheck.verification.diff().
# This file is not part of the signcheck package. For reference only.

import sys

from signcheck.exceptions import SignCheckError
from signcheck.verification import Verdict, diff, verdict

# Inputs: two extracted application bundles.
local_bundle     = "build/Release/cefclient.app"
reference_bundle = "reference/Release/cefclient.app"

# Compare
try:
    report = diff(local_bundle, reference_bundle, max_workers=4)
except SignCheckError as exc:
    # Raised only for tree-level problems, e.g. a root that is not a directory.
    # Per-file problems are reported as modified, with the reason in report.errors.
    sys.exit(exc.message)

# Inspect
print(f"compared:       {report.compared_count}")
print(f"matched:        {report.matched_count}")
print(f"signature-only: {list(report.signature_only)}")
print(f"modified:       {list(report.modified)}")
print(f"missing:        {list(report.missing_in_local)}")
print(f"extra:          {list(report.missing_in_original)}")

for error in report.errors:
    print(f"  {error.relative_path}: {error.error_type}: {error.detail}")

print("PASS" if verdict(report) is Verdict.PASS else "FAIL")

# Expected output for a bundle that was only re-signed:
# compared:       412
# matched:        398
# signature-only: ['Contents/Frameworks/Chromium Embedded Framework.framework/Chromium Embedded Framework',
#                  'Contents/MacOS/cefclient', ...]
# modified:       []
# missing:        []
# extra:          []
# PASS
