# signcheck/run_verify.py
# Verification run -- Entry Point.
#
# Standard invocation (reference build resolved from the build index):
#   python -m signcheck.run_verify cefclient.zip [73.1.5]
#
# Offline invocation (reference archive already on disk, no checksum check):
#   python -m signcheck.run_verify cefclient.zip --reference-archive original.tar.bz2
#
# Two extracted trees:
#   python -m signcheck.run_verify --local-dir local.app --reference-dir original.app
#
# EXIT CODES:
#   0  -- Verification passed. Differences are confined to signatures.
#   1  -- Verification failed: modified files or files missing locally.
#   2  -- Reference archive checksum mismatch.
#   3  -- Lookup, download, extraction or invocation failure.
#   4  -- Internal error.

import argparse
import logging
import shutil
import sys
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from signcheck.config import DEFAULT_COMPARATOR_CONFIG, FetchConfig
from signcheck.fetch.archive import detect_version, extract_archive, require_bundle
from signcheck.fetch.build_index import BuildIndexClient
from signcheck.fetch.downloader import fetch_reference_archive, format_bytes
from signcheck.logging_config import setup_logging
from signcheck.verification.data_models.comparison_report import ComparisonReport, Verdict
from signcheck.verification.failure_handler import FailureHandler
from signcheck.verification.report_aggregator import verdict
from signcheck.verification.report_serializer import ReportSerializer
from signcheck.verification.tree_differ import TreeDiffer

logger = logging.getLogger(__name__)


def _new_run_id() -> str:
    return "RUN-" + datetime.now(timezone.utc).strftime("%Y%m%d") + "-" + str(uuid.uuid4())[:8].upper()


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Verify that a re-signed application bundle matches the original "
            "build, ignoring code signature differences."
        ),
        prog="python -m signcheck.run_verify",
    )
    parser.add_argument(
        "local_archive",
        nargs="?",
        default=None,
        help="Path to the re-signed archive (zip or tar).",
    )
    parser.add_argument(
        "version",
        nargs="?",
        default=None,
        help=(
            "Full version (e.g. 73.1.5) or major version (e.g. 73). "
            "Detected from the bundle's Info.plist if omitted."
        ),
    )
    parser.add_argument(
        "--reference-archive",
        default=None,
        help="Use a reference archive already on disk instead of downloading one.",
    )
    parser.add_argument(
        "--local-dir",
        default=None,
        help="Compare an already extracted local bundle directory.",
    )
    parser.add_argument(
        "--reference-dir",
        default=None,
        help="Compare against an already extracted reference bundle directory.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of threads classifying file pairs (default 1).",
    )
    parser.add_argument(
        "--report-json",
        default=None,
        help="Write the comparison report as JSON to this path.",
    )
    parser.add_argument(
        "--runs-dir",
        default=None,
        help="Directory for failure records.",
    )
    parser.add_argument(
        "--keep-temp",
        action="store_true",
        default=False,
        help="Keep the temporary extraction directory for inspection.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: SIGNCHECK_LOG_LEVEL or INFO).",
    )
    return parser.parse_args(argv)


def _print_bucket(title: str, paths) -> None:
    if not paths:
        return
    print(title)
    for p in paths:
        print(f"   - {p}")
    print("")


def print_report(report: ComparisonReport) -> None:
    """Human-readable breakdown on stdout."""
    print("\n=== Verification Results ===\n")
    _print_bucket("Files missing in local build:", report.missing_in_local)
    _print_bucket("Extra files in local build (may be expected):", report.missing_in_original)
    _print_bucket("Modified files (content differs):", report.modified)
    _print_bucket("Files with signature-only changes (expected):", report.signature_only)
    if report.errors:
        print("Files that could not be compared (reported as modified):")
        for e in report.errors:
            print(f"   - {e.relative_path}: {e.detail}")
        print("")

    print(f"Files compared:         {report.compared_count}")
    print(f"Matching:               {report.matched_count}")
    print(f"Signature-only changes: {len(report.signature_only)}")
    print(f"Content modified:       {len(report.modified)}")
    print(f"Missing:                {len(report.missing_in_local)}")
    print("")

    if verdict(report) is Verdict.PASS:
        print("VERIFICATION PASSED: Build matches original (signature changes only)")
    else:
        print("VERIFICATION FAILED: Build has unexpected modifications")


class VerificationRun:
    """
    One verification run: prepares both bundle trees, compares them and
    reports. Fatal errors go through FailureHandler, which exits.
    """

    def __init__(
        self,
        args:         argparse.Namespace,
        fetch_config: Optional[FetchConfig] = None,
        index_client: Optional[BuildIndexClient] = None,
    ):
        self.args         = args
        self.run_id       = _new_run_id()
        self.fetch_config = fetch_config or FetchConfig()
        self.index_client = index_client
        self.fh           = FailureHandler(
            run_id=self.run_id,
            runs_dir=Path(args.runs_dir) if args.runs_dir else None,
        )
        self.context      = {}

    def prepare_local(self, work_dir: Path) -> Path:
        if self.args.local_dir:
            return Path(self.args.local_dir)
        print("Step 1: Extracting local archive...")
        extracted = extract_archive(self.args.local_archive, work_dir / "local")
        bundle = require_bundle(extracted, self.fetch_config.bundle_name)
        self.context["local_archive"] = str(self.args.local_archive)
        return bundle

    def prepare_reference(self, work_dir: Path, local_bundle: Path) -> Path:
        if self.args.reference_dir:
            return Path(self.args.reference_dir)

        if self.args.reference_archive:
            print("Step 2: Extracting reference archive (checksum not verified)...")
            archive = Path(self.args.reference_archive)
            self.context["reference_archive"] = str(archive)
        else:
            version = self.args.version
            if not version:
                version = detect_version(local_bundle)
                print(f"Detected version: {version}")
            self.context["requested_version"] = version

            print("Step 2: Finding original build...")
            client = self.index_client or BuildIndexClient(self.fetch_config)
            descriptor = client.find_build(version)
            print(f"Found: {descriptor.archive_name}")
            print(f"Expected SHA1: {descriptor.expected_sha1}")
            print(f"Expected size: {format_bytes(descriptor.expected_size)}")
            self.context["reference_url"] = descriptor.download_url
            self.context["reference_version"] = descriptor.version

            print("Step 3: Downloading and verifying original build...")
            download_dir = work_dir / "download"
            download_dir.mkdir(parents=True, exist_ok=True)
            archive = fetch_reference_archive(
                descriptor,
                download_dir,
                session=client.session,
                timeout=self.fetch_config.timeout,
                user_agent=self.fetch_config.user_agent,
            )

        print("Step 4: Extracting original archive...")
        extracted = extract_archive(archive, work_dir / "original")
        return require_bundle(extracted, self.fetch_config.bundle_name)

    def execute(self) -> int:
        args = self.args
        if not args.local_archive and not args.local_dir:
            self.fh.handle(
                "CONTRACT_VIOLATION",
                "Either LOCAL_ARCHIVE or --local-dir is required.",
            )
        if args.workers < 1:
            self.fh.handle(
                "CONTRACT_VIOLATION",
                f"--workers must be >= 1. Received: {args.workers}.",
            )

        logger.info("Run %s started", self.run_id)
        print("=== Build Integrity Verification ===\n")
        work_dir = Path(tempfile.mkdtemp(prefix="signcheck-"))
        try:
            # Anything other than a SignCheckError maps to HARNESS_INTERNAL_ERROR.
            try:
                local_bundle     = self.prepare_local(work_dir)
                reference_bundle = self.prepare_reference(work_dir, local_bundle)
            except Exception as exc:
                self.fh.handle_from_exception(exc)

            print(f"\nLocal app:    {local_bundle}")
            print(f"Original app: {reference_bundle}\n")
            print("Step 5: Comparing files (ignoring signatures)...")

            differ = TreeDiffer(DEFAULT_COMPARATOR_CONFIG, max_workers=args.workers)
            try:
                report = differ.diff(local_bundle, reference_bundle)
            except Exception as exc:
                self.fh.handle_from_exception(exc)

            print_report(report)

            if args.report_json:
                try:
                    path = ReportSerializer().serialize(
                        report, Path(args.report_json), self.run_id, self.context,
                    )
                except OSError as exc:
                    self.fh.handle("HARNESS_INTERNAL_ERROR", f"Failed to write report: {exc}")
                print(f"\nReport written: {path}")

            if verdict(report) is Verdict.PASS:
                return 0
            return self.fh.record_verification_failure(
                f"{len(report.modified)} modified, {len(report.missing_in_local)} missing in local build",
                subject=str(local_bundle),
            )

        finally:
            if args.keep_temp:
                print(f"\nTemporary files kept in {work_dir}")
            else:
                shutil.rmtree(work_dir, ignore_errors=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        setup_logging(args.log_level)
    except ValueError as exc:
        sys.stderr.write(f"CONTRACT_VIOLATION: {exc}\n")
        return 3
    return VerificationRun(args).execute()


if __name__ == "__main__":
    sys.exit(main())
