# signcheck/fetch/downloader.py
# Archive download and checksum verification.
#
# A reference archive is only handed to extraction after its SHA-1 matches
# the index. A mismatch raises ChecksumMismatchError and is fatal.

import hashlib
import logging
from pathlib import Path
from typing import Optional, Union

import requests

from signcheck.exceptions import ChecksumMismatchError, ComparatorIOError, DownloadError
from signcheck.fetch.build_index import RemoteBuildDescriptor

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def format_bytes(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.1f} MB"


def sha1_file(path: Union[str, Path]) -> str:
    h = hashlib.sha1()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError as exc:
        raise ComparatorIOError(str(path), f"cannot read archive: {exc}") from exc
    return h.hexdigest()


def verify_checksum(path: Union[str, Path], expected_sha1: str) -> str:
    """Return the actual SHA-1 if it equals expected_sha1, else raise."""
    actual = sha1_file(path)
    if actual != expected_sha1.lower():
        raise ChecksumMismatchError(str(path), expected_sha1.lower(), actual)
    logger.info("SHA1 verified: %s", actual)
    return actual


def download_file(
    url:        str,
    dest:       Union[str, Path],
    session:    Optional[requests.Session] = None,
    timeout:    float = 60,
    user_agent: str = "signcheck",
) -> Path:
    """Stream url to dest, following redirects. Returns dest."""
    dest = Path(dest)
    http = session or requests.Session()
    logger.info("Downloading %s", url)
    try:
        with http.get(
            url,
            headers={"User-Agent": user_agent},
            timeout=timeout,
            stream=True,
            allow_redirects=True,
        ) as response:
            if response.status_code != 200:
                raise DownloadError(url, f"HTTP {response.status_code}", status_code=response.status_code)
            total = int(response.headers.get("content-length") or 0)
            written = 0
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
            logger.info(
                "Downloaded %s%s", format_bytes(written),
                f" of {format_bytes(total)}" if total else "",
            )
    except requests.RequestException as exc:
        raise DownloadError(url, f"request failed: {exc}") from exc
    except OSError as exc:
        raise DownloadError(url, f"cannot write {dest}: {exc}") from exc
    return dest


def fetch_reference_archive(
    descriptor: RemoteBuildDescriptor,
    dest_dir:   Union[str, Path],
    session:    Optional[requests.Session] = None,
    timeout:    float = 60,
    user_agent: str = "signcheck",
) -> Path:
    """Download the descriptor's archive into dest_dir and verify its SHA-1."""
    dest = Path(dest_dir) / Path(descriptor.archive_name).name
    download_file(descriptor.download_url, dest, session=session, timeout=timeout, user_agent=user_agent)

    actual_size = dest.stat().st_size
    if descriptor.expected_size and actual_size != descriptor.expected_size:
        logger.warning(
            "Archive size %d differs from index size %d", actual_size, descriptor.expected_size,
        )

    verify_checksum(dest, descriptor.expected_sha1)
    return dest
