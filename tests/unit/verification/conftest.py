# tests/unit/verification/conftest.py
# Shared fixtures for the comparator tests. Image builders live in
# macho_builders.py.

from pathlib import Path
from typing import Callable, Tuple

import pytest

from macho_builders import SIGNED_IMAGE_KWARGS, build_fat_image, build_thin_image


@pytest.fixture
def thin_image() -> Callable[..., bytes]:
    return build_thin_image


@pytest.fixture
def fat_image() -> Callable[..., bytes]:
    return build_fat_image


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    """Write bytes to tmp_path/<relative> and return the path."""
    def _write(relative: str, data: bytes) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path
    return _write


@pytest.fixture
def signed_pair() -> Tuple[bytes, bytes]:
    """Unsigned and re-signed versions of the same image."""
    unsigned = build_thin_image()
    signed = build_thin_image(**SIGNED_IMAGE_KWARGS)
    return unsigned, signed
