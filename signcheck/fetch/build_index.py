# signcheck/fetch/build_index.py
# BuildIndexClient -- resolves a version string to the reference build's
# RemoteBuildDescriptor using the remote JSON build index.
#
# Index layout:
#   { "<platform>": { "versions": [ { "cef_version": "73.1.5+g...",
#                                     "files": [ { "type": "client",
#                                                  "name": "...tar.bz2",
#                                                  "sha1": "...",
#                                                  "size": 123 } ] } ] } }
#
# Matching:
#   full version ("73.1.5", three or more components) -> cef_version
#       starts with "73.1.5+"
#   partial version ("73")                            -> cef_version
#       starts with "73."
# Platforms are scanned in configured order, builds in index order. The
# first build with a "client" file wins. An entry of the wrong JSON type,
# or a matched file without a usable name or size, is a DownloadError: the
# index itself is bad, which is different from "no such version".

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

from signcheck.config import FetchConfig
from signcheck.exceptions import DownloadError, IndexLookupError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteBuildDescriptor:
    """
    Location and expected digest of a reference build archive.

    Fields:
      download_url   -- Absolute URL of the archive.
      expected_sha1  -- 40-char lowercase hex SHA-1 from the index.
      expected_size  -- Archive size in bytes from the index (0 if absent).
      archive_name   -- File name of the archive.
      version        -- Full version string of the matched build.
      platform       -- Index platform key the build was found under.
    """
    download_url:  str
    expected_sha1: str
    expected_size: int
    archive_name:  str
    version:       str = ""
    platform:      str = ""


def version_matches(build_version: str, requested: str) -> bool:
    parts = requested.split(".")
    if len(parts) >= 3:
        return build_version.startswith(requested + "+")
    return build_version.startswith(parts[0] + ".")


def fetch_json(
    url:     str,
    session: Optional[requests.Session] = None,
    timeout: float = 60,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """GET url (redirects followed) and decode the JSON body."""
    http = session or requests.Session()
    try:
        response = http.get(url, headers=headers, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        raise DownloadError(url, f"request failed: {exc}") from exc
    if response.status_code != 200:
        raise DownloadError(url, f"HTTP {response.status_code}", status_code=response.status_code)
    try:
        return response.json()
    except ValueError as exc:
        raise DownloadError(url, f"invalid JSON body: {exc}") from exc


class BuildIndexClient:
    """
    Looks up reference builds in the remote index.

    Method:
      find_build(version) -> RemoteBuildDescriptor
    """

    def __init__(
        self,
        config:  Optional[FetchConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self._config  = config or FetchConfig()
        self._session = session or requests.Session()

    @property
    def session(self) -> requests.Session:
        return self._session

    def fetch_index(self) -> Dict[str, Any]:
        logger.info("Fetching build index %s", self._config.index_url)
        index = fetch_json(
            self._config.index_url,
            session=self._session,
            timeout=self._config.timeout,
            headers={"User-Agent": self._config.user_agent},
        )
        if not isinstance(index, dict):
            raise DownloadError(self._config.index_url, "index is not a JSON object")
        return index

    def find_build(self, version: str) -> RemoteBuildDescriptor:
        return self.select_build(self.fetch_index(), version)

    def select_build(self, index: Dict[str, Any], version: str) -> RemoteBuildDescriptor:
        """Pure lookup over an already fetched index."""
        for platform in self._config.platforms:
            entry = index.get(platform) or {}
            if not isinstance(entry, dict):
                raise self._malformed(f"platform {platform!r} is not an object")
            builds = entry.get("versions") or []
            if not isinstance(builds, list):
                raise self._malformed(f"{platform}.versions is not a list")
            for build in builds:
                if not isinstance(build, dict):
                    raise self._malformed(f"build entry under {platform} is not an object")
                build_version = build.get("cef_version")
                if not build_version:
                    continue
                if not isinstance(build_version, str):
                    raise self._malformed(f"cef_version {build_version!r} is not a string")
                if not version_matches(build_version, version):
                    continue
                files = build.get("files") or []
                if not isinstance(files, list) or not all(isinstance(f, dict) for f in files):
                    raise self._malformed(f"files of build {build_version} is not a list of objects")
                client = next((f for f in files if f.get("type") == self._config.distribution_type), None)
                if client is None:
                    continue
                descriptor = self._descriptor(client, build_version, platform)
                logger.info("Matched %s build %s (%s)", platform, build_version, descriptor.archive_name)
                return descriptor

        raise IndexLookupError(version, self._config.index_url)

    def _descriptor(self, client: Dict[str, Any], build_version: str, platform: str) -> RemoteBuildDescriptor:
        name = client.get("name")
        if not isinstance(name, str) or not name:
            raise self._malformed(f"{self._config.distribution_type} file of {build_version} has no name")
        try:
            size = int(client.get("size") or 0)
        except (TypeError, ValueError):
            raise self._malformed(f"{name} has invalid size {client.get('size')!r}") from None
        return RemoteBuildDescriptor(
            download_url=urljoin(self._config.download_base, name),
            expected_sha1=str(client.get("sha1", "")).lower(),
            expected_size=size,
            archive_name=name,
            version=build_version,
            platform=platform,
        )

    def _malformed(self, detail: str) -> DownloadError:
        return DownloadError(self._config.index_url, f"malformed index entry: {detail}")
