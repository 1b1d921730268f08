"""HTTP access to the service under test."""

import time
from collections.abc import Mapping

import httpx
from loguru import logger
from pydantic import BaseModel, Field


class ServiceResponse(BaseModel):
    """Status, body text and headers of one GET of the target page."""

    status_code: int
    text: str
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        return next((value for key, value in self.headers.items() if key.lower() == wanted), None)


class ServiceClient:
    """Plain HTTP/1.1 GET against a single well-known URL.

    Transport errors (``httpx.RequestError``) propagate to the calling probe
    step, which classifies them.
    """

    def __init__(
        self,
        url: str,
        transport: httpx.BaseTransport | None = None,
        headers: Mapping[str, str] | None = None,
    ):
        """Initialize the client.

        Args:
            url: Absolute URL of the probed page
            transport: Optional httpx transport (tests inject ``httpx.MockTransport``)
            headers: Extra request headers
        """
        self.url = url
        self._transport = transport
        self._headers = dict(headers or {})

    def fetch(self, timeout: float) -> ServiceResponse:
        """GET the target page within ``timeout`` seconds overall.

        httpx applies ``timeout`` to each connect, read and write on its own,
        so the body is streamed and the overall deadline is checked after
        every chunk. A response that arrives too slowly fails at most one
        read later than the deadline.

        Args:
            timeout: Deadline in seconds for the whole request, body included

        Returns:
            ServiceResponse: Snapshot of the response

        Raises:
            httpx.TimeoutException: If the whole response does not arrive in time
            httpx.RequestError: If the target cannot be reached
        """
        deadline = time.monotonic() + timeout
        with httpx.Client(transport=self._transport, timeout=timeout, headers=self._headers) as client:
            with client.stream("GET", self.url) as response:
                chunks = []
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise httpx.ReadTimeout(
                            f"response not complete within {timeout:g}s", request=response.request
                        )
                content = b"".join(chunks)

        logger.trace(f"GET {self.url} -> {response.status_code} ({len(content)} bytes)")
        return ServiceResponse(
            status_code=response.status_code,
            text=content.decode(response.encoding or "utf-8", errors="replace"),
            headers=dict(response.headers.items()),
        )

    def __repr__(self) -> str:
        return f"ServiceClient(url='{self.url}')"
