"""Global constants for the health check and release gate.

This module defines constants used throughout the application to avoid
hardcoded strings and make the codebase more maintainable.
"""

# Probed service
DEFAULT_TARGET_URL = "http://localhost/upsstats.cgi"
CONTAINER_HTTP_PORT = 80

# Tier names, in evaluation order
TIER_TRANSPORT = "transport"
TIER_EXECUTION = "execution"
TIER_INFRASTRUCTURE = "infrastructure-validity"
TIER_HEADERS = "headers"
TIER_DOMAIN_LIVENESS = "domain-liveness"

# Body markers of a server or template level failure (fatal in every mode)
INFRASTRUCTURE_ERROR_MARKERS = (
    "can't open template file",
    "internal server error",
    "500 error",
)

# Body markers of an unreachable monitored UPS (fatal in strict mode only)
UPSTREAM_UNAVAILABLE_MARKERS = (
    "no ups found",
    "connection failure",
    "driver not connected",
    "data stale",
    "unknown ups",
    "can't connect to",
)

# Body markers that prove the page carries live UPS data
DOMAIN_EVIDENCE_MARKERS = (
    "battery",
    "on line",
    "on battery",
    "input voltage",
    "ups model",
)

# Release gate
DEFAULT_IMAGE_REPOSITORY = "nut-cgi"
OCI_REVISION_LABEL = "org.opencontainers.image.revision"
