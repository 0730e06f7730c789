# signcheck/config.py
# Configuration values for the comparator and the fetch layer.
#
# ComparatorConfig is passed explicitly into the sniffer, extractor, hasher
# and exclusion filter. No component reads module-level mutable state.
# FetchConfig reads its defaults from the environment at construction time.

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


# ---------------------------------------------------------------------------
# Mach-O magic numbers, as read little-endian from the first four bytes.
# ---------------------------------------------------------------------------
MH_MAGIC:    int = 0xFEEDFACE    # 32-bit
MH_MAGIC_64: int = 0xFEEDFACF    # 64-bit
FAT_MAGIC:   int = 0xCAFEBABE    # universal, byte-swapped on disk
FAT_CIGAM:   int = 0xBEBAFECA    # universal, as stored on disk

SIGNATURE_SEGMENT: str = "__LINKEDIT"

SIGNATURE_MARKERS: Tuple[str, ...] = (
    "_CodeSignature",
    "CodeResources",
    ".DS_Store",
    "embedded.provisionprofile",
)


@dataclass(frozen=True)
class ComparatorConfig:
    """
    Immutable settings shared by the comparator components.

    Fields:
      exclusion_markers  -- substrings marking signature-only paths.
      single_arch_magics -- leading magic values of single-architecture images.
      fat_magics         -- leading magic values of fat (universal) images.
      signature_segment  -- segment rewritten wholesale by code signing.
      chunk_size         -- read size for whole-file digests.
      max_fat_arches     -- upper bound on slices in a fat header. Larger
                            counts are rejected (Java class files share the
                            fat magic).
    """
    exclusion_markers:  Tuple[str, ...] = SIGNATURE_MARKERS
    single_arch_magics: FrozenSet[int] = frozenset({MH_MAGIC, MH_MAGIC_64})
    fat_magics:         FrozenSet[int] = frozenset({FAT_MAGIC, FAT_CIGAM})
    signature_segment:  str = SIGNATURE_SEGMENT
    chunk_size:         int = 1024 * 1024
    max_fat_arches:     int = 30

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError(
                f"ComparatorConfig: chunk_size must be > 0, got {self.chunk_size}"
            )
        if self.max_fat_arches <= 0:
            raise ValueError(
                f"ComparatorConfig: max_fat_arches must be > 0, got {self.max_fat_arches}"
            )
        if not self.signature_segment:
            raise ValueError("ComparatorConfig: signature_segment must be non-empty")


DEFAULT_COMPARATOR_CONFIG = ComparatorConfig()


def _env_platforms() -> Tuple[str, ...]:
    raw = os.getenv("SIGNCHECK_PLATFORMS", "macosx64,macosarm64")
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass
class FetchConfig:
    """Settings for resolving and downloading the reference build."""

    index_url:     str = field(default_factory=lambda: os.getenv(
        "SIGNCHECK_INDEX_URL", "https://cef-builds.spotifycdn.com/index.json"))
    download_base: str = field(default_factory=lambda: os.getenv(
        "SIGNCHECK_DOWNLOAD_BASE", "https://cef-builds.spotifycdn.com/"))
    platforms:     Tuple[str, ...] = field(default_factory=_env_platforms)
    user_agent:    str = field(default_factory=lambda: os.getenv(
        "SIGNCHECK_USER_AGENT", "signcheck"))
    timeout:       float = field(default_factory=lambda: float(os.getenv(
        "SIGNCHECK_HTTP_TIMEOUT", "60")))
    bundle_name:   str = field(default_factory=lambda: os.getenv(
        "SIGNCHECK_BUNDLE_NAME", "cefclient.app"))
    distribution_type: str = "client"
    log_level:     Optional[str] = field(default_factory=lambda: os.getenv(
        "SIGNCHECK_LOG_LEVEL"))
