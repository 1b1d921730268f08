"""Classification of response bodies.

Telling an infrastructure failure (the CGI cannot render at all) apart from
an unreachable monitored UPS (the CGI renders an error about its upstream)
is keyword matching on body text. All of that matching lives behind the
``BodyClassifier`` protocol so the rules can be hardened without touching
the tier engine.
"""

from collections.abc import Iterable
from enum import StrEnum
from typing import Protocol, runtime_checkable

from nut_cgi_gate.constants import (
    DOMAIN_EVIDENCE_MARKERS,
    INFRASTRUCTURE_ERROR_MARKERS,
    UPSTREAM_UNAVAILABLE_MARKERS,
)


class BodyClass(StrEnum):
    """What a response body says about the service."""

    OK = "ok"
    INFRASTRUCTURE_ERROR = "infrastructure_error"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


@runtime_checkable
class BodyClassifier(Protocol):
    """Pluggable predicate over response body text."""

    def classify(self, body: str) -> BodyClass:
        """Classify a body; infrastructure errors take precedence over upstream errors."""
        ...

    def has_domain_evidence(self, body: str) -> bool:
        """Whether the body carries positive evidence of live domain data."""
        ...


class MarkerClassifier:
    """Case-insensitive substring matching against marker lists."""

    def __init__(
        self,
        infrastructure_markers: Iterable[str] = INFRASTRUCTURE_ERROR_MARKERS,
        upstream_markers: Iterable[str] = UPSTREAM_UNAVAILABLE_MARKERS,
        evidence_markers: Iterable[str] = DOMAIN_EVIDENCE_MARKERS,
    ):
        self.infrastructure_markers = tuple(marker.lower() for marker in infrastructure_markers)
        self.upstream_markers = tuple(marker.lower() for marker in upstream_markers)
        self.evidence_markers = tuple(marker.lower() for marker in evidence_markers)

    def classify(self, body: str) -> BodyClass:
        lowered = body.lower()
        if self._first_match(lowered, self.infrastructure_markers):
            return BodyClass.INFRASTRUCTURE_ERROR
        if self._first_match(lowered, self.upstream_markers):
            return BodyClass.UPSTREAM_UNAVAILABLE
        return BodyClass.OK

    def has_domain_evidence(self, body: str) -> bool:
        return self._first_match(body.lower(), self.evidence_markers) is not None

    def matched_marker(self, body: str) -> str | None:
        """First infrastructure or upstream marker found in ``body``, for diagnostics."""
        lowered = body.lower()
        return self._first_match(lowered, self.infrastructure_markers) or self._first_match(lowered, self.upstream_markers)

    @staticmethod
    def _first_match(lowered: str, markers: tuple[str, ...]) -> str | None:
        return next((marker for marker in markers if marker in lowered), None)
