# tests/unit/fetch/test_archive.py
# Target: signcheck/fetch/archive.py

import io
import os
import plistlib
import stat
import tarfile
import zipfile

import pytest

from signcheck.exceptions import ArchiveExtractionError
from signcheck.fetch import archive as archive_module
from signcheck.fetch.archive import detect_version, extract_archive, find_bundle, require_bundle

needs_symlinks = pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")

# Both tar extraction paths: PEP 706 filters and the per-member fallback.
tar_filter_modes = pytest.mark.parametrize("use_filters", [
    pytest.param(
        True,
        marks=pytest.mark.skipif(not hasattr(tarfile, "data_filter"), reason="no tar filters"),
    ),
    False,
])


def _zip(path, members):
    """members: list of (name, data, mode)."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, data, mode in members:
            info = zipfile.ZipInfo(name)
            info.external_attr = mode << 16
            zf.writestr(info, data)
    return path


def _tar(path, members, compression="bz2"):
    with tarfile.open(path, f"w:{compression}") as tf:
        for name, data in members:
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tf.addfile(info, io.BytesIO(data))
    return path


def _tar_links(path, links):
    """links: list of (name, tar type, linkname)."""
    with tarfile.open(path, "w") as tf:
        for name, kind, linkname in links:
            info = tarfile.TarInfo(name)
            info.type = kind
            info.linkname = linkname
            info.mode = 0o777
            tf.addfile(info)
    return path


def _bundle(root, version="73.1.5.0"):
    contents = root / "cefclient.app" / "Contents"
    contents.mkdir(parents=True)
    with open(contents / "Info.plist", "wb") as f:
        plistlib.dump({"CFBundleShortVersionString": version, "CFBundleName": "cefclient"}, f)
    return root / "cefclient.app"


class TestExtractArchive:
    def test_zip(self, tmp_path):
        archive = _zip(tmp_path / "a.zip", [
            ("build/cefclient.app/Contents/MacOS/cefclient", b"\xcf\xfa\xed\xfe", stat.S_IFREG | 0o755),
            ("build/cefclient.app/Contents/Info.plist", b"<plist/>", stat.S_IFREG | 0o644),
        ])
        dest = extract_archive(archive, tmp_path / "out")
        binary = dest / "build" / "cefclient.app" / "Contents" / "MacOS" / "cefclient"
        assert binary.read_bytes() == b"\xcf\xfa\xed\xfe"
        assert os.stat(binary).st_mode & 0o111

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_zip_symlinks_recreated(self, tmp_path):
        archive = _zip(tmp_path / "a.zip", [
            ("Foo.framework/Versions/A/Foo", b"binary", stat.S_IFREG | 0o755),
            ("Foo.framework/Versions/Current", b"A", stat.S_IFLNK | 0o777),
        ])
        dest = extract_archive(archive, tmp_path / "out")
        current = dest / "Foo.framework" / "Versions" / "Current"
        assert current.is_symlink()
        assert os.readlink(current) == "A"

    @pytest.mark.parametrize("compression", ["bz2", "gz", ""])
    def test_tar(self, tmp_path, compression):
        archive = _tar(tmp_path / "a.tar", [("cefclient.app/Contents/Info.plist", b"<plist/>")], compression)
        dest = extract_archive(archive, tmp_path / "out")
        assert (dest / "cefclient.app" / "Contents" / "Info.plist").read_bytes() == b"<plist/>"

    @pytest.mark.parametrize("name", ["../evil.txt", "/abs/evil.txt", "a/../../evil.txt"])
    def test_zip_traversal_rejected(self, tmp_path, name):
        archive = _zip(tmp_path / "a.zip", [(name, b"x", stat.S_IFREG | 0o644)])
        with pytest.raises(ArchiveExtractionError, match="unsafe member path"):
            extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "evil.txt").exists()

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_zip_relative_symlink_inside_archive(self, tmp_path):
        archive = _zip(tmp_path / "a.zip", [
            ("Foo.framework/Versions/B/Foo", b"binary", stat.S_IFREG | 0o755),
            ("Foo.framework/Versions/A/Foo", b"../B/Foo", stat.S_IFLNK | 0o777),
        ])
        dest = extract_archive(archive, tmp_path / "out")
        assert (dest / "Foo.framework" / "Versions" / "A" / "Foo").read_bytes() == b"binary"

    def test_zip_symlink_escape_rejected(self, tmp_path):
        archive = _zip(tmp_path / "a.zip", [("link", b"../../etc", stat.S_IFLNK | 0o777)])
        with pytest.raises(ArchiveExtractionError, match="unsafe member path"):
            extract_archive(archive, tmp_path / "out")

    @needs_symlinks
    def test_zip_symlink_chain_escape_rejected(self, tmp_path):
        # Each link stays inside the root on its own; together they climb out.
        archive = _zip(tmp_path / "a.zip", [
            ("sub/b", b"..", stat.S_IFLNK | 0o777),
            ("sub/a", b"b/..", stat.S_IFLNK | 0o777),
            ("sub/a/escaped.txt", b"x", stat.S_IFREG | 0o644),
        ])
        dest = tmp_path / "work" / "out"
        with pytest.raises(ArchiveExtractionError, match="resolves outside the destination"):
            extract_archive(archive, dest)
        assert not (tmp_path / "work" / "escaped.txt").exists()
        assert not os.path.lexists(dest / "sub" / "a")

    @needs_symlinks
    def test_zip_member_written_through_internal_symlink(self, tmp_path):
        archive = _zip(tmp_path / "a.zip", [
            ("up", b".", stat.S_IFLNK | 0o777),
            ("up/file.txt", b"x", stat.S_IFREG | 0o644),
        ])
        dest = extract_archive(archive, tmp_path / "out")
        assert (dest / "file.txt").read_bytes() == b"x"

    def test_tar_traversal_rejected(self, tmp_path):
        archive = _tar(tmp_path / "a.tar.bz2", [("../evil.txt", b"x")])
        with pytest.raises(ArchiveExtractionError, match="unsafe member path"):
            extract_archive(archive, tmp_path / "out")

    @needs_symlinks
    @tar_filter_modes
    @pytest.mark.parametrize("kind", [tarfile.SYMTYPE, tarfile.LNKTYPE])
    def test_tar_link_escape_rejected(self, tmp_path, monkeypatch, use_filters, kind):
        monkeypatch.setattr(archive_module, "_HAS_EXTRACTION_FILTERS", use_filters)
        (tmp_path / "outside").write_text("secret")
        archive = _tar_links(tmp_path / "a.tar", [("link", kind, "../outside")])
        dest = tmp_path / "out"
        with pytest.raises(ArchiveExtractionError):
            extract_archive(archive, dest)
        assert not os.path.lexists(dest / "link")

    @needs_symlinks
    @tar_filter_modes
    def test_tar_symlink_chain_escape_rejected(self, tmp_path, monkeypatch, use_filters):
        monkeypatch.setattr(archive_module, "_HAS_EXTRACTION_FILTERS", use_filters)
        archive = _tar_links(tmp_path / "a.tar", [
            ("sub/b", tarfile.SYMTYPE, ".."),
            ("sub/a", tarfile.SYMTYPE, "b/.."),
        ])
        with pytest.raises(ArchiveExtractionError):
            extract_archive(archive, tmp_path / "work" / "out")
        assert not os.path.lexists(tmp_path / "work" / "out" / "sub" / "a")

    @needs_symlinks
    def test_tar_without_filters_keeps_internal_links(self, tmp_path, monkeypatch):
        monkeypatch.setattr(archive_module, "_HAS_EXTRACTION_FILTERS", False)
        archive = tmp_path / "a.tar"
        with tarfile.open(archive, "w") as tf:
            info = tarfile.TarInfo("Foo.framework/Versions/A/Foo")
            info.size = 6
            tf.addfile(info, io.BytesIO(b"binary"))
            link = tarfile.TarInfo("Foo.framework/Versions/Current")
            link.type = tarfile.SYMTYPE
            link.linkname = "A"
            tf.addfile(link)
        dest = extract_archive(archive, tmp_path / "out")
        current = dest / "Foo.framework" / "Versions" / "Current"
        assert os.readlink(current) == "A"
        assert (current / "Foo").read_bytes() == b"binary"

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ArchiveExtractionError, match="archive not found"):
            extract_archive(tmp_path / "missing.zip", tmp_path / "out")

    def test_unsupported_format(self, tmp_path):
        archive = tmp_path / "notes.txt"
        archive.write_text("not an archive\n" * 50)
        with pytest.raises(ArchiveExtractionError, match="unsupported archive format"):
            extract_archive(archive, tmp_path / "out")


class TestFindBundle:
    def test_nested_bundle(self, tmp_path):
        bundle = _bundle(tmp_path / "cef_binary" / "Release")
        assert find_bundle(tmp_path, "cefclient.app") == bundle

    def test_outer_bundle_wins_over_nested(self, tmp_path):
        outer = _bundle(tmp_path)
        (outer / "Contents" / "Frameworks" / "cefclient.app").mkdir(parents=True)
        assert find_bundle(tmp_path, "cefclient.app") == outer

    def test_depth_first_in_name_order(self, tmp_path):
        # "a" is searched to the bottom before its sibling "b" is looked at.
        deep = _bundle(tmp_path / "a" / "Release")
        _bundle(tmp_path / "b")
        assert find_bundle(tmp_path, "cefclient.app") == deep

    @needs_symlinks
    def test_symlinked_directories_not_followed(self, tmp_path):
        _bundle(tmp_path / "elsewhere")
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(tmp_path / "elsewhere", root / "link")
        os.symlink(tmp_path / "elsewhere" / "cefclient.app", root / "cefclient.app")
        assert find_bundle(root, "cefclient.app") is None

    def test_not_found(self, tmp_path):
        assert find_bundle(tmp_path, "cefclient.app") is None
        with pytest.raises(ArchiveExtractionError, match="could not find cefclient.app"):
            require_bundle(tmp_path, "cefclient.app")


class TestDetectVersion:
    def test_truncates_to_three_components(self, tmp_path):
        assert detect_version(_bundle(tmp_path, "73.1.5.0")) == "73.1.5"

    def test_short_version_kept(self, tmp_path):
        assert detect_version(_bundle(tmp_path, "73")) == "73"

    def test_missing_plist(self, tmp_path):
        with pytest.raises(ArchiveExtractionError, match="Info.plist not found"):
            detect_version(tmp_path)

    def test_missing_key(self, tmp_path):
        contents = tmp_path / "Contents"
        contents.mkdir()
        with open(contents / "Info.plist", "wb") as f:
            plistlib.dump({"CFBundleName": "cefclient"}, f)
        with pytest.raises(ArchiveExtractionError, match="CFBundleShortVersionString"):
            detect_version(tmp_path)

    def test_corrupt_plist(self, tmp_path):
        contents = tmp_path / "Contents"
        contents.mkdir()
        (contents / "Info.plist").write_bytes(b"\x00\x01garbage")
        with pytest.raises(ArchiveExtractionError, match="failed to parse"):
            detect_version(tmp_path)
