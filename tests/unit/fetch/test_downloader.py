# tests/unit/fetch/test_downloader.py
# Target: signcheck/fetch/downloader.py

import hashlib
import logging

import pytest

from http_fakes import FakeResponse
from signcheck.exceptions import ChecksumMismatchError, ComparatorIOError, DownloadError
from signcheck.fetch.build_index import RemoteBuildDescriptor
from signcheck.fetch.downloader import (
    download_file,
    fetch_reference_archive,
    format_bytes,
    sha1_file,
    verify_checksum,
)

URL = "https://builds.test/cef_client.tar.bz2"
PAYLOAD = b"archive bytes " * 1000


def _descriptor(sha1=None, size=len(PAYLOAD)):
    return RemoteBuildDescriptor(
        download_url=URL,
        expected_sha1=sha1 or hashlib.sha1(PAYLOAD).hexdigest(),
        expected_size=size,
        archive_name="cef_client.tar.bz2",
    )


class TestFormatBytes:
    @pytest.mark.parametrize("value, expected", [
        (0, "0 B"),
        (1023, "1023 B"),
        (2048, "2.0 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
    ])
    def test_units(self, value, expected):
        assert format_bytes(value) == expected


class TestChecksum:
    def test_sha1_file(self, tmp_path):
        path = tmp_path / "a"
        path.write_bytes(PAYLOAD)
        assert sha1_file(path) == hashlib.sha1(PAYLOAD).hexdigest()

    def test_sha1_missing_file(self, tmp_path):
        with pytest.raises(ComparatorIOError):
            sha1_file(tmp_path / "missing")

    def test_verify_accepts_uppercase_expected(self, tmp_path):
        path = tmp_path / "a"
        path.write_bytes(PAYLOAD)
        expected = hashlib.sha1(PAYLOAD).hexdigest()
        assert verify_checksum(path, expected.upper()) == expected

    def test_verify_mismatch(self, tmp_path):
        path = tmp_path / "a"
        path.write_bytes(PAYLOAD)
        with pytest.raises(ChecksumMismatchError) as exc_info:
            verify_checksum(path, "0" * 40)
        assert exc_info.value.expected == "0" * 40
        assert exc_info.value.actual == hashlib.sha1(PAYLOAD).hexdigest()


class TestDownloadFile:
    def test_streams_to_disk(self, tmp_path, fake_session):
        response = FakeResponse(body=PAYLOAD, headers={"content-length": str(len(PAYLOAD))})
        fake_session.routes[URL] = response
        dest = download_file(URL, tmp_path / "out", session=fake_session, user_agent="ua")
        assert dest.read_bytes() == PAYLOAD
        assert response.closed
        request = fake_session.requests[0]
        assert request["stream"] is True
        assert request["headers"] == {"User-Agent": "ua"}

    def test_http_error(self, tmp_path, fake_session):
        fake_session.routes[URL] = FakeResponse(status_code=403)
        with pytest.raises(DownloadError, match="HTTP 403"):
            download_file(URL, tmp_path / "out", session=fake_session)

    def test_connection_error(self, tmp_path, fake_session, connection_error):
        fake_session.routes[URL] = connection_error
        with pytest.raises(DownloadError, match="request failed"):
            download_file(URL, tmp_path / "out", session=fake_session)

    def test_unwritable_destination(self, tmp_path, fake_session):
        fake_session.routes[URL] = FakeResponse(body=PAYLOAD)
        with pytest.raises(DownloadError, match="cannot write"):
            download_file(URL, tmp_path / "missing-dir" / "out", session=fake_session)


class TestFetchReferenceArchive:
    def test_verified_download(self, tmp_path, fake_session):
        fake_session.routes[URL] = FakeResponse(body=PAYLOAD)
        path = fetch_reference_archive(_descriptor(), tmp_path, session=fake_session)
        assert path == tmp_path / "cef_client.tar.bz2"
        assert path.read_bytes() == PAYLOAD

    def test_checksum_mismatch_is_fatal(self, tmp_path, fake_session):
        fake_session.routes[URL] = FakeResponse(body=PAYLOAD)
        with pytest.raises(ChecksumMismatchError):
            fetch_reference_archive(_descriptor(sha1="f" * 40), tmp_path, session=fake_session)

    def test_size_mismatch_only_warns(self, tmp_path, fake_session, caplog):
        fake_session.routes[URL] = FakeResponse(body=PAYLOAD)
        with caplog.at_level(logging.WARNING, logger="signcheck.fetch.downloader"):
            fetch_reference_archive(_descriptor(size=1), tmp_path, session=fake_session)
        assert "differs from index size" in caplog.text
