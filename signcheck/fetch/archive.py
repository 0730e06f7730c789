# signcheck/fetch/archive.py
# Archive extraction, bundle lookup and bundle version detection.
#
# Members that would land outside the destination directory (absolute
# paths, ".." components) are rejected before anything is written.
# Zip symlink entries are recreated as symlinks, so both archive formats
# produce the same tree shape. A link may point upwards only while it stays
# inside the archive root. Every write target is also resolved through the
# links already extracted, so a chain of individually harmless links cannot
# carry a later member outside the destination.

import logging
import os
import plistlib
import posixpath
import stat
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from signcheck.exceptions import ArchiveExtractionError

logger = logging.getLogger(__name__)

# tarfile extraction filters (PEP 706); absent on older interpreters.
_HAS_EXTRACTION_FILTERS = hasattr(tarfile, "data_filter")


def _check_member_name(archive: Path, name: str) -> None:
    member = PurePosixPath(name.replace("\\", "/"))
    if member.is_absolute() or ".." in member.parts:
        raise ArchiveExtractionError(str(archive), f"unsafe member path {name!r}")


def _check_link_target(archive: Path, name: str, link_target: str, base: str) -> None:
    """Reject link targets that leave the archive root when read from base."""
    resolved = posixpath.normpath(posixpath.join(base, link_target))
    if link_target.startswith("/") or resolved == ".." or resolved.startswith("../"):
        raise ArchiveExtractionError(str(archive), f"unsafe member path {name!r} -> {link_target!r}")


def _ensure_within(archive: Path, root: str, path: Union[str, Path], name: str) -> None:
    """Raise unless path, with every symlink on it resolved, stays below root."""
    resolved = os.path.realpath(path)
    if os.path.commonpath([root, resolved]) != root:
        raise ArchiveExtractionError(
            str(archive), f"member {name!r} resolves outside the destination ({resolved})"
        )


def _make_symlink(archive: Path, root: str, link_target: str, target: Path, name: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(link_target, target)
    try:
        _ensure_within(archive, root, target, name)
    except ArchiveExtractionError:
        os.unlink(target)
        raise


def _extract_zip(archive: Path, dest: Path) -> None:
    root = os.path.realpath(dest)
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            _check_member_name(archive, info.filename)
        for info in zf.infolist():
            mode = info.external_attr >> 16
            target = dest / info.filename
            _ensure_within(archive, root, target, info.filename)
            if stat.S_ISLNK(mode):
                link_target = zf.read(info).decode("utf-8")
                _check_link_target(archive, info.filename, link_target, posixpath.dirname(info.filename))
                _make_symlink(archive, root, link_target, target, info.filename)
                continue
            zf.extract(info, dest)
            if mode and not info.is_dir():
                os.chmod(target, stat.S_IMODE(mode))


def _extract_tar(archive: Path, dest: Path) -> None:
    with tarfile.open(archive, "r:*") as tf:
        members = tf.getmembers()
        for member in members:
            _check_member_name(archive, member.name)
        if _HAS_EXTRACTION_FILTERS:
            tf.extractall(dest, members=members, filter="data")
            return

        # No extraction filters on this interpreter: apply the same link
        # rules as for zip archives, one member at a time.
        root = os.path.realpath(dest)
        for member in members:
            target = dest / member.name
            _ensure_within(archive, root, target, member.name)
            if member.issym():
                _check_link_target(archive, member.name, member.linkname, posixpath.dirname(member.name))
                _make_symlink(archive, root, member.linkname, target, member.name)
                continue
            if member.islnk():
                _check_link_target(archive, member.name, member.linkname, "")
                _ensure_within(archive, root, dest / member.linkname, member.name)
            tf.extract(member, dest)


def extract_archive(archive: Union[str, Path], dest: Union[str, Path]) -> Path:
    """
    Extract a zip or tar archive (any compression tarfile understands)
    into dest. Returns dest.
    """
    archive = Path(archive)
    dest = Path(dest)
    if not archive.is_file():
        raise ArchiveExtractionError(str(archive), "archive not found")
    dest.mkdir(parents=True, exist_ok=True)

    logger.info("Extracting %s", archive)
    try:
        if zipfile.is_zipfile(archive):
            _extract_zip(archive, dest)
        elif tarfile.is_tarfile(archive):
            _extract_tar(archive, dest)
        else:
            raise ArchiveExtractionError(str(archive), "unsupported archive format")
    except (zipfile.BadZipFile, tarfile.TarError, OSError, UnicodeDecodeError) as exc:
        raise ArchiveExtractionError(str(archive), f"extraction failed: {exc}") from exc
    return dest


def find_bundle(root: Union[str, Path], bundle_name: str) -> Optional[Path]:
    """
    Depth-first search for a directory named bundle_name below root.
    Siblings are visited in name order and each one's subtree is searched
    before the next sibling. Symlinked directories are not followed.
    """
    root = Path(root)
    try:
        with os.scandir(root) as entries:
            subdirs = sorted(e.name for e in entries if e.is_dir(follow_symlinks=False))
    except OSError as exc:
        logger.debug("Skipping unreadable directory %s: %s", root, exc)
        return None
    for name in subdirs:
        if name == bundle_name:
            return root / name
        found = find_bundle(root / name, bundle_name)
        if found is not None:
            return found
    return None


def require_bundle(root: Union[str, Path], bundle_name: str) -> Path:
    bundle = find_bundle(root, bundle_name)
    if bundle is None:
        raise ArchiveExtractionError(str(root), f"could not find {bundle_name}")
    return bundle


def detect_version(bundle: Union[str, Path]) -> str:
    """
    Read CFBundleShortVersionString from Contents/Info.plist and keep its
    first three dotted components ("73.1.5.0" -> "73.1.5").
    """
    info_plist = Path(bundle) / "Contents" / "Info.plist"
    if not info_plist.is_file():
        raise ArchiveExtractionError(str(info_plist), "Info.plist not found, cannot detect version")
    try:
        with open(info_plist, "rb") as f:
            plist = plistlib.load(f)
    except (plistlib.InvalidFileException, ValueError, OSError) as exc:
        raise ArchiveExtractionError(str(info_plist), f"failed to parse Info.plist: {exc}") from exc

    bundle_version = plist.get("CFBundleShortVersionString") if isinstance(plist, dict) else None
    if not bundle_version:
        raise ArchiveExtractionError(str(info_plist), "CFBundleShortVersionString not found")
    return ".".join(str(bundle_version).split(".")[:3])
