"""Tier engine: answers "is the service ready?" with graduated confidence.

The engine owns an ordered, declaratively configured list of tiers. Each
``evaluate`` call runs the tiers required by the requested mode strictly in
order and stops at the first tier that fails; later tiers are reported as
skipped and their steps are never invoked. The engine keeps no state between
calls and never retries: retry and backoff belong to the caller (for a
container, the orchestrator's health-check policy).

Typical Usage:
    engine = TierEngine([transport_tier, execution_tier, liveness_tier])

    report = engine.evaluate(HealthMode.STRICT)
    print(report.summary_line())
"""

from collections.abc import Iterable

import arrow
from loguru import logger

from .calculator import ReportCalculator
from .enums import CheckStatus, HealthMode, HealthState
from .models import HealthReport
from .tier import Tier


class TierEngine:
    """Evaluates ordered tiers of probe steps against a service.

    Attributes:
        tiers: Tuple of Tier objects in evaluation order
    """

    def __init__(self, tiers: Iterable[Tier]):
        """Initialize the engine.

        Args:
            tiers: Tiers to evaluate, in order

        Raises:
            ValueError: If two tiers share a name
        """
        self.tiers = tuple(tiers)
        names = self.get_tier_names()
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate tier names: {names}")
        self._calculator = ReportCalculator()

    def evaluate(self, mode: HealthMode | str = HealthMode.BASIC) -> HealthReport:
        """Evaluate the service in ``mode``.

        Unrecognized mode values fall back to ``basic``. A report is always
        returned; this method does not raise.

        Args:
            mode: Strictness mode

        Returns:
            HealthReport: Verdict plus the per-tier results
        """
        mode = HealthMode.parse(mode)
        logger.debug(f"Starting health evaluation in {mode} mode")
        start_time = arrow.utcnow().float_timestamp

        report = HealthReport(mode=mode, overall=HealthState.UNHEALTHY, detail="Health evaluation in progress")
        required = {tier.name for tier in self.tiers if tier.is_required_in(mode)}

        stop_reason: str | None = None
        for tier in self.tiers:
            if not tier.is_required_in(mode):
                report.tier_results.append(tier.skipped_result(CheckStatus.NOT_APPLICABLE, f"Not evaluated in {mode} mode"))
                continue
            if stop_reason is not None:
                report.tier_results.append(tier.skipped_result(CheckStatus.SKIPPED, stop_reason))
                logger.debug(f"Skipping tier {tier.name}: {stop_reason}")
                continue

            tier_result = tier.evaluate()
            report.tier_results.append(tier_result)
            if not tier_result.passed:
                stop_reason = f"Skipped due to failure of tier '{tier.name}'"

        return self._calculator.finalize_report(report, required, start_time)

    def get_tier_names(self) -> list[str]:
        """Get names of all tiers in evaluation order."""
        return [tier.name for tier in self.tiers]

    def get_tier(self, tier_name: str) -> Tier | None:
        """Get a tier by name."""
        return next((tier for tier in self.tiers if tier.name == tier_name), None)

    def tiers_for(self, mode: HealthMode | str) -> list[Tier]:
        """Tiers evaluated in ``mode``, in order."""
        mode = HealthMode.parse(mode)
        return [tier for tier in self.tiers if tier.is_required_in(mode)]

    def __str__(self) -> str:
        return f"TierEngine(tiers={len(self.tiers)})"

    def __repr__(self) -> str:
        return f"TierEngine(tiers={self.get_tier_names()})"
