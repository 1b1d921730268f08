"""HTTP probe steps for the nut-cgi page.

Each step performs its own GET of the target page, bounded by its timeout,
and checks one concern of the response. A transport error on any step is
reported as a transport failure; it is never mistaken for the absence of
domain data.
"""

from abc import abstractmethod

import httpx
from loguru import logger

from nut_cgi_gate.constants import (
    TIER_DOMAIN_LIVENESS,
    TIER_EXECUTION,
    TIER_HEADERS,
    TIER_INFRASTRUCTURE,
    TIER_TRANSPORT,
)
from nut_cgi_gate.health import FailureKind, ProbeResult, ProbeStep
from nut_cgi_gate.health.base import DEFAULT_STEP_TIMEOUT

from .classifier import BodyClass, BodyClassifier, MarkerClassifier
from .client import ServiceClient, ServiceResponse


class HttpProbeStep(ProbeStep):
    """Probe step that inspects one fresh response of the target page."""

    def __init__(self, name: str, client: ServiceClient, timeout: float = DEFAULT_STEP_TIMEOUT):
        super().__init__(name, timeout)
        self.client = client

    def _execute(self) -> ProbeResult:
        try:
            response = self.client.fetch(self.timeout)
        except httpx.TimeoutException as e:
            return self.failed(
                FailureKind.TRANSPORT_FAILURE,
                f"lighttpd not responding: timed out after {self.timeout:g}s",
                {"url": self.client.url, "error": str(e), "type": type(e).__name__},
            )
        except httpx.RequestError as e:
            return self.failed(
                FailureKind.TRANSPORT_FAILURE,
                f"lighttpd not responding: {e}",
                {"url": self.client.url, "error": str(e), "type": type(e).__name__},
            )
        return self.inspect(response)

    @abstractmethod
    def inspect(self, response: ServiceResponse) -> ProbeResult:
        """Check one concern of ``response``."""


class TransportStep(HttpProbeStep):
    """Web server reachable and answering with a 2xx status."""

    def __init__(self, client: ServiceClient, timeout: float = DEFAULT_STEP_TIMEOUT, name: str = TIER_TRANSPORT):
        super().__init__(name, client, timeout)

    def inspect(self, response: ServiceResponse) -> ProbeResult:
        if not response.is_success:
            return self.failed(
                FailureKind.TRANSPORT_FAILURE,
                f"lighttpd not responding: HTTP {response.status_code}",
                {"status_code": response.status_code},
            )
        return self.success("lighttpd responding", {"status_code": response.status_code})


class ExecutionStep(HttpProbeStep):
    """CGI program executes and produces a body."""

    def __init__(self, client: ServiceClient, timeout: float = DEFAULT_STEP_TIMEOUT, name: str = TIER_EXECUTION):
        super().__init__(name, client, timeout)

    def inspect(self, response: ServiceResponse) -> ProbeResult:
        if not response.text.strip():
            return self.failed(FailureKind.EMPTY_RESPONSE, "nut-cgi not executing: empty response body")
        return self.success("nut-cgi executing", {"body_length": len(response.text)})


class InfrastructureValidityStep(HttpProbeStep):
    """Body carries no server or template level error markers.

    An unreachable UPS is not an infrastructure failure and passes here.
    """

    def __init__(
        self,
        client: ServiceClient,
        classifier: BodyClassifier | None = None,
        timeout: float = DEFAULT_STEP_TIMEOUT,
        name: str = TIER_INFRASTRUCTURE,
    ):
        super().__init__(name, client, timeout)
        self.classifier = classifier or MarkerClassifier()

    def inspect(self, response: ServiceResponse) -> ProbeResult:
        if not response.text.strip():
            return self.failed(FailureKind.EMPTY_RESPONSE, "nut-cgi not executing: empty response body")
        body_class = self.classifier.classify(response.text)
        if body_class == BodyClass.INFRASTRUCTURE_ERROR:
            return self.failed(
                FailureKind.INFRASTRUCTURE_ERROR,
                "nut-cgi infrastructure failure",
                {"classification": body_class.value, "marker": _marker(self.classifier, response.text)},
            )
        return self.success("nut-cgi output valid", {"classification": body_class.value})


class HeadersStep(HttpProbeStep):
    """Response declares an accepted Content-Type."""

    def __init__(
        self,
        client: ServiceClient,
        accepted_content_types: tuple[str, ...] = ("text/html",),
        timeout: float = DEFAULT_STEP_TIMEOUT,
        name: str = TIER_HEADERS,
    ):
        super().__init__(name, client, timeout)
        self.accepted_content_types = tuple(media_type.lower() for media_type in accepted_content_types)

    def inspect(self, response: ServiceResponse) -> ProbeResult:
        content_type = response.header("content-type")
        if not content_type:
            return self.failed(FailureKind.MALFORMED_HEADERS, "nut-cgi response missing Content-Type header")

        media_type = content_type.split(";", 1)[0].strip().lower()
        if self.accepted_content_types and media_type not in self.accepted_content_types:
            return self.failed(
                FailureKind.MALFORMED_HEADERS,
                f"nut-cgi response has unexpected Content-Type '{media_type}'",
                {"content_type": content_type, "accepted": list(self.accepted_content_types)},
            )
        return self.success("nut-cgi headers valid", {"content_type": content_type})


class DomainLivenessStep(HttpProbeStep):
    """Monitored UPS reachable and reporting data."""

    def __init__(
        self,
        client: ServiceClient,
        classifier: BodyClassifier | None = None,
        timeout: float = DEFAULT_STEP_TIMEOUT,
        name: str = TIER_DOMAIN_LIVENESS,
    ):
        super().__init__(name, client, timeout)
        self.classifier = classifier or MarkerClassifier()

    def inspect(self, response: ServiceResponse) -> ProbeResult:
        if not response.text.strip():
            return self.failed(FailureKind.EMPTY_RESPONSE, "nut-cgi not executing: empty response body")

        body_class = self.classifier.classify(response.text)
        if body_class == BodyClass.INFRASTRUCTURE_ERROR:
            return self.failed(FailureKind.INFRASTRUCTURE_ERROR, "nut-cgi infrastructure failure")
        if body_class == BodyClass.UPSTREAM_UNAVAILABLE:
            marker = _marker(self.classifier, response.text)
            logger.debug(f"Upstream unavailable marker found: {marker}")
            return self.failed(
                FailureKind.UPSTREAM_UNAVAILABLE,
                f"UPS unavailable: response reports '{marker}'" if marker else "UPS unavailable",
                {"classification": body_class.value, "marker": marker},
            )
        if not self.classifier.has_domain_evidence(response.text):
            return self.failed(FailureKind.UPSTREAM_UNAVAILABLE, "UPS unavailable: no UPS data in response")
        return self.success("UPS data present")


def _marker(classifier: BodyClassifier, body: str) -> str | None:
    matched_marker = getattr(classifier, "matched_marker", None)
    return matched_marker(body) if matched_marker is not None else None
