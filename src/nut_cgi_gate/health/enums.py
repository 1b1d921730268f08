"""Enums for the tiered health engine.

This module contains basic enums to avoid circular dependencies.
"""

from enum import StrEnum


class CheckStatus(StrEnum):
    """Status of individual probe steps or tiers."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOT_APPLICABLE = "not_applicable"


class HealthMode(StrEnum):
    """Health-check strictness selector."""

    BASIC = "basic"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: "str | HealthMode | None") -> "HealthMode":
        """Parse a mode value, falling back to ``basic`` for anything unrecognized."""
        if isinstance(value, HealthMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.BASIC


class HealthState(StrEnum):
    """Overall verdict of a health evaluation."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class FailureKind(StrEnum):
    """Classification of why a probe step, job or release attempt failed."""

    TRANSPORT_FAILURE = "transport_failure"
    EMPTY_RESPONSE = "empty_response"
    INFRASTRUCTURE_ERROR = "infrastructure_error"
    MALFORMED_HEADERS = "malformed_headers"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    STEP_ERROR = "step_error"
    TIMEOUT = "timeout"
    BUILD_FAILED = "build_failed"
    VERIFICATION_FAILED = "verification_failed"
    PROMOTION_FAILED = "promotion_failed"
