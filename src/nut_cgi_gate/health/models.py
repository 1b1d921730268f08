"""Data models for the tiered health engine.

This module contains Pydantic models used throughout the health engine
to avoid circular dependencies between components.
"""

from typing import Any

import arrow
from pydantic import BaseModel, Field

from .enums import CheckStatus, FailureKind, HealthMode, HealthState


class ProbeResult(BaseModel):
    """Result of an individual probe step."""

    model_config = {"use_enum_values": True}

    status: CheckStatus
    detail: str
    step_name: str
    failure: FailureKind | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    tier_name: str | None = None
    executed_at: str | None = None  # ISO 8601 UTC timestamp
    execution_time_ms: float | None = None

    @property
    def passed(self) -> bool:
        """Whether the step passed."""
        return self.status == CheckStatus.SUCCESS


class TierResult(BaseModel):
    """Result of evaluating one tier (an ordered group of probe steps)."""

    model_config = {"use_enum_values": True}

    tier_name: str
    status: CheckStatus
    detail: str
    first_failing_step: str | None = None
    failure: FailureKind | None = None
    step_results: list[ProbeResult] = Field(default_factory=list)
    executed_at: str | None = None  # ISO 8601 UTC timestamp
    execution_time_ms: float | None = None

    @property
    def passed(self) -> bool:
        """Whether every step of the tier passed."""
        return self.status == CheckStatus.SUCCESS


class HealthReport(BaseModel):
    """Complete result of one ``TierEngine.evaluate`` call."""

    model_config = {"use_enum_values": True}

    mode: HealthMode
    overall: HealthState
    detail: str
    tier_results: list[TierResult] = Field(default_factory=list)
    executed_at: str = Field(default_factory=lambda: arrow.utcnow().isoformat())
    total_execution_time_ms: float | None = None
    evaluated_tiers: int = 0
    passed_tiers: int = 0

    @property
    def healthy(self) -> bool:
        """Whether the evaluation verdict is healthy."""
        return self.overall == HealthState.HEALTHY

    def first_failure(self) -> TierResult | None:
        """Return the failing tier, if any."""
        return next((tier for tier in self.tier_results if tier.status == CheckStatus.FAILED), None)

    def summary_line(self) -> str:
        """Single-line diagnostic for the process exit contract."""
        if self.healthy:
            return f"OK: {self.detail}"
        return f"ERROR: {self.detail}"
