# signcheck/fetch/__init__.py
# Collaborators that prepare the comparator's inputs: build index lookup,
# archive download with checksum verification, archive extraction.

from .archive import detect_version, extract_archive, find_bundle, require_bundle
from .build_index import BuildIndexClient, RemoteBuildDescriptor, version_matches
from .downloader import download_file, fetch_reference_archive, sha1_file, verify_checksum

__all__ = [
    "BuildIndexClient",
    "RemoteBuildDescriptor",
    "version_matches",
    "download_file",
    "fetch_reference_archive",
    "sha1_file",
    "verify_checksum",
    "detect_version",
    "extract_archive",
    "find_bundle",
    "require_bundle",
]
