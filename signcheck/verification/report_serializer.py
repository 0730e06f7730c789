# signcheck/verification/report_serializer.py
# ReportSerializer -- writes a ComparisonReport and its verdict to JSON.
#
# Bucket lists are written in report order (sorted). The file is written
# once per run; parent directories are created if missing.

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from signcheck.version import REPORT_FORMAT_VERSION, __version__
from signcheck.verification.data_models.comparison_report import ComparisonReport
from signcheck.verification.report_aggregator import verdict


def report_to_dict(report: ComparisonReport) -> Dict[str, Any]:
    return {
        "verdict":             verdict(report).value,
        "compared_count":      report.compared_count,
        "matched_count":       report.matched_count,
        "signature_only":      list(report.signature_only),
        "modified":            list(report.modified),
        "missing_in_local":    list(report.missing_in_local),
        "missing_in_original": list(report.missing_in_original),
        "errors": [
            {
                "relative_path": e.relative_path,
                "error_type":    e.error_type,
                "detail":        e.detail,
            }
            for e in report.errors
        ],
    }


class ReportSerializer:
    """Serializes a ComparisonReport to a JSON file."""

    def serialize(
        self,
        report:   ComparisonReport,
        filepath: Path,
        run_id:   str,
        context:  Optional[Dict[str, Any]] = None,
    ) -> Path:
        """
        Write the report to filepath and return it.

        context holds run metadata (archive paths, version, reference URL)
        and is written verbatim under "context".
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "format_version": REPORT_FORMAT_VERSION,
            "tool_version":   __version__,
            "run_id":         run_id,
            "timestamp_iso":  datetime.now(timezone.utc).isoformat(),
            "context":        dict(context or {}),
            "report":         report_to_dict(report),
        }

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

        return filepath
