"""Tests for the HTTP probe steps."""

import time

import httpx
import pytest

from nut_cgi_gate.constants import UPSTREAM_UNAVAILABLE_MARKERS
from nut_cgi_gate.health import CheckStatus, FailureKind
from nut_cgi_gate.probes import (
    BodyClass,
    BodyClassifier,
    DomainLivenessStep,
    ExecutionStep,
    HeadersStep,
    InfrastructureValidityStep,
    MarkerClassifier,
    ServiceClient,
    TransportStep,
)

URL = "http://nut-cgi.test/upsstats.cgi"

UPS_PAGE = """<html><body>
<h1>Network UPS Tools upsstats</h1>
<table><tr><td>UPS Model: Smart-UPS 1500</td></tr>
<tr><td>Status: On line</td></tr>
<tr><td>Battery: 100%</td></tr></table>
</body></html>"""


def _client(handler) -> ServiceClient:
    return ServiceClient(URL, transport=httpx.MockTransport(handler))


def _responding(*args, **kwargs) -> ServiceClient:
    return _client(lambda request: httpx.Response(*args, **kwargs))


def _refusing(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


def _dripping(request: httpx.Request) -> httpx.Response:
    """Answer with a five byte body, one byte every 0.4s."""

    def body():
        for byte in b"<html":
            time.sleep(0.4)
            yield bytes([byte])

    return httpx.Response(200, headers={"Content-Type": "text/html"}, content=body())


class TestServiceClient:
    """Test the HTTP client wrapper."""

    def test_fetch(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, html=UPS_PAGE)

        response = _client(handler).fetch(timeout=1.0)

        assert response.status_code == 200
        assert response.is_success
        assert "Smart-UPS" in response.text
        assert response.header("CONTENT-TYPE").startswith("text/html")
        assert seen[0].method == "GET"
        assert str(seen[0].url) == URL

    def test_missing_header(self):
        response = _responding(204).fetch(timeout=1.0)
        assert response.header("content-type") is None

    def test_slow_body_exceeds_deadline(self):
        """The timeout bounds the whole response, not each read."""
        started = time.monotonic()

        with pytest.raises(httpx.TimeoutException):
            _client(_dripping).fetch(timeout=1.0)

        assert time.monotonic() - started < 1.5

    def test_streamed_body_within_deadline(self):
        response = _client(_dripping).fetch(timeout=5.0)
        assert response.text == "<html"


class TestTransportStep:
    def test_success(self):
        result = TransportStep(_responding(200, html=UPS_PAGE)).run()
        assert result.status == CheckStatus.SUCCESS

    def test_connection_refused(self):
        result = TransportStep(_client(_refusing)).run()

        assert result.status == CheckStatus.FAILED
        assert result.failure == FailureKind.TRANSPORT_FAILURE
        assert result.detail.startswith("lighttpd not responding")
        assert result.details["type"] == "ConnectError"

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = TransportStep(_client(handler), timeout=2.0).run()

        assert result.failure == FailureKind.TRANSPORT_FAILURE
        assert result.detail == "lighttpd not responding: timed out after 2s"

    def test_slow_body_fails_transport_tier(self):
        started = time.monotonic()

        result = TransportStep(_client(_dripping), timeout=1.0).run()

        assert time.monotonic() - started < 1.5
        assert result.status == CheckStatus.FAILED
        assert result.failure == FailureKind.TRANSPORT_FAILURE
        assert result.detail == "lighttpd not responding: timed out after 1s"

    def test_server_error_status(self):
        result = TransportStep(_responding(500, html="<h1>500 Internal Server Error</h1>")).run()

        assert result.failure == FailureKind.TRANSPORT_FAILURE
        assert result.detail == "lighttpd not responding: HTTP 500"


class TestExecutionStep:
    def test_body_present(self):
        assert ExecutionStep(_responding(200, html=UPS_PAGE)).run().passed

    def test_empty_body(self):
        result = ExecutionStep(_responding(200, html="")).run()

        assert result.failure == FailureKind.EMPTY_RESPONSE
        assert "not executing" in result.detail

    def test_whitespace_body(self):
        result = ExecutionStep(_responding(200, html="  \n\t ")).run()
        assert result.failure == FailureKind.EMPTY_RESPONSE


class TestInfrastructureValidityStep:
    def test_template_error(self):
        page = "<html><body>Error: can't open template file upsstats.html</body></html>"
        result = InfrastructureValidityStep(_responding(200, html=page)).run()

        assert result.failure == FailureKind.INFRASTRUCTURE_ERROR
        assert result.detail == "nut-cgi infrastructure failure"
        assert result.details["marker"] == "can't open template file"

    def test_upstream_error_is_not_infrastructure_failure(self):
        page = "<html><body>Error: No UPS found</body></html>"
        result = InfrastructureValidityStep(_responding(200, html=page)).run()

        assert result.passed
        assert result.details["classification"] == "upstream_unavailable"

    def test_valid_page(self):
        assert InfrastructureValidityStep(_responding(200, html=UPS_PAGE)).run().passed


class TestHeadersStep:
    def test_html_accepted(self):
        result = HeadersStep(_responding(200, html=UPS_PAGE)).run()
        assert result.passed

    def test_charset_parameter_ignored(self):
        client = _responding(200, content=b"<html></html>", headers={"Content-Type": "Text/HTML; charset=utf-8"})
        assert HeadersStep(client).run().passed

    def test_missing_content_type(self):
        result = HeadersStep(_responding(200, content=b"<html></html>")).run()

        assert result.failure == FailureKind.MALFORMED_HEADERS
        assert "missing Content-Type" in result.detail

    def test_unexpected_content_type(self):
        result = HeadersStep(_responding(200, text="plain")).run()

        assert result.failure == FailureKind.MALFORMED_HEADERS
        assert "text/plain" in result.detail

    def test_configured_content_types(self):
        client = _responding(200, json={"ups": "ok"})
        assert HeadersStep(client, accepted_content_types=("text/html", "application/json")).run().passed


class TestDomainLivenessStep:
    def test_ups_data_present(self):
        result = DomainLivenessStep(_responding(200, html=UPS_PAGE)).run()
        assert result.passed
        assert result.detail == "UPS data present"

    def test_no_ups_found(self):
        result = DomainLivenessStep(_responding(200, html="<p>Error: No UPS found</p>")).run()

        assert result.failure == FailureKind.UPSTREAM_UNAVAILABLE
        assert result.detail == "UPS unavailable: response reports 'no ups found'"

    def test_no_evidence(self):
        result = DomainLivenessStep(_responding(200, html="<p>Welcome</p>")).run()

        assert result.failure == FailureKind.UPSTREAM_UNAVAILABLE
        assert result.detail == "UPS unavailable: no UPS data in response"

    def test_transport_error_is_not_domain_failure(self):
        """An unreachable server is a transport failure, never 'no UPS data'."""
        result = DomainLivenessStep(_client(_refusing)).run()
        assert result.failure == FailureKind.TRANSPORT_FAILURE

    def test_custom_classifier(self):
        class AlwaysDown:
            def classify(self, body: str) -> BodyClass:
                return BodyClass.UPSTREAM_UNAVAILABLE

            def has_domain_evidence(self, body: str) -> bool:
                return False

        assert isinstance(AlwaysDown(), BodyClassifier)
        result = DomainLivenessStep(_responding(200, html=UPS_PAGE), classifier=AlwaysDown()).run()

        assert result.failure == FailureKind.UPSTREAM_UNAVAILABLE
        assert result.detail == "UPS unavailable"


class TestMarkerClassifier:
    def test_infrastructure_takes_precedence(self):
        classifier = MarkerClassifier()
        body = "500 error: can't connect to upsd"

        assert classifier.classify(body) == BodyClass.INFRASTRUCTURE_ERROR
        assert classifier.matched_marker(body) == "500 error"

    def test_case_insensitive(self):
        classifier = MarkerClassifier()

        assert classifier.classify("DATA STALE") == BodyClass.UPSTREAM_UNAVAILABLE
        assert classifier.has_domain_evidence("BATTERY CHARGE")
        assert classifier.classify(UPS_PAGE) == BodyClass.OK

    def test_custom_markers(self):
        classifier = MarkerClassifier(infrastructure_markers=["Segfault"], upstream_markers=[], evidence_markers=["volts"])

        assert classifier.classify("segfault in cgi") == BodyClass.INFRASTRUCTURE_ERROR
        assert classifier.classify("No UPS found") == BodyClass.OK
        assert not classifier.has_domain_evidence(UPS_PAGE)

    @pytest.mark.parametrize("marker", UPSTREAM_UNAVAILABLE_MARKERS)
    def test_every_upstream_marker(self, marker):
        body = f"<html><body>Error: {marker.upper()}</body></html>"
        assert MarkerClassifier().classify(body) == BodyClass.UPSTREAM_UNAVAILABLE
