# signcheck/verification/exclusion_filter.py
# ExclusionFilter -- recognizes paths that only exist to carry signatures.
#
# Matching is a plain substring test against the configured markers:
# _CodeSignature/, CodeResources, .DS_Store, embedded.provisionprofile.
# Their presence or absence carries no integrity signal.

from typing import Iterable, List, Sequence

from signcheck.config import ComparatorConfig, DEFAULT_COMPARATOR_CONFIG


class ExclusionFilter:
    """Decides whether a relative path is a signature artifact."""

    def __init__(
        self,
        markers: Sequence[str] = None,
        config:  ComparatorConfig = DEFAULT_COMPARATOR_CONFIG,
    ):
        self._markers = tuple(markers) if markers is not None else tuple(config.exclusion_markers)

    @property
    def markers(self) -> tuple:
        return self._markers

    def is_signature_artifact(self, relative_path: str) -> bool:
        return any(marker in relative_path for marker in self._markers)

    def filter_paths(self, relative_paths: Iterable[str]) -> List[str]:
        """Return the paths that are not signature artifacts, in input order."""
        return [p for p in relative_paths if not self.is_signature_artifact(p)]
