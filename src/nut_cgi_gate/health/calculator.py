"""Health report finalization.

This module provides the ReportCalculator class responsible for turning the
tier results of one evaluation into the final verdict.

State Determination Logic:
- Every tier required in the mode passed: HEALTHY
- Anything else: UNHEALTHY, with the failing tier's detail as the diagnostic
"""

import arrow
from loguru import logger

from .enums import CheckStatus, HealthState
from .models import HealthReport

HEALTHY_DETAIL = "nut-cgi healthy"


class ReportCalculator:
    """Derives the overall verdict and statistics of a HealthReport.

    Attributes:
        None (stateless calculator - operates on report objects)
    """

    def finalize_report(self, report: HealthReport, required_tiers: set[str], start_time: float) -> HealthReport:
        """Calculate statistics and the overall verdict.

        Args:
            report: Report holding the tier results of this evaluation
            required_tiers: Names of the tiers required in the report's mode
            start_time: Unix timestamp when evaluation began

        Returns:
            HealthReport: The same report, finalized
        """
        evaluated = [tier for tier in report.tier_results if tier.status in (CheckStatus.SUCCESS, CheckStatus.FAILED)]
        passed = {tier.tier_name for tier in evaluated if tier.passed}
        report.evaluated_tiers = len(evaluated)
        report.passed_tiers = len(passed)

        if required_tiers <= passed:
            report.overall = HealthState.HEALTHY
            report.detail = f"{HEALTHY_DETAIL} ({report.mode})"
            logger.info(f"Health evaluation passed in {report.mode} mode")
        else:
            report.overall = HealthState.UNHEALTHY
            failing = report.first_failure()
            if failing is not None:
                report.detail = f"{failing.detail} [tier: {failing.tier_name}]"
            else:
                missing = sorted(required_tiers - passed)
                report.detail = f"required tiers not evaluated: {', '.join(missing)}"
            logger.warning(f"Health evaluation failed in {report.mode} mode: {report.detail}")

        report.total_execution_time_ms = (arrow.utcnow().float_timestamp - start_time) * 1000
        return report
