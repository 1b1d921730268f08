"""Step execution component for health tiers.

This module provides the StepExecutor class responsible for executing individual
probe steps within tiers. It handles timing, exception management, and result
enrichment with traceability information.

Key Features:
- Individual step execution with timing measurement
- Exception handling and conversion to failed results
- Result enrichment with tier names and execution timestamps
"""

import arrow
from loguru import logger

from .base import ProbeStep
from .enums import CheckStatus, FailureKind
from .models import ProbeResult


class StepExecutor:
    """Handles individual step execution within tiers.

    The StepExecutor runs a ProbeStep, measures its execution time, converts
    any exception into a failed result and stamps the result with the tier
    name. It is the boundary that guarantees a step never raises into the
    engine.

    Attributes:
        None (stateless executor - all state is in the results)
    """

    def execute_step(self, step: ProbeStep, tier_name: str) -> ProbeResult:
        """Execute a single step and return its enriched result.

        Args:
            step: The ProbeStep instance to execute.
            tier_name: Name of the tier executing this step. Used for
                       traceability and debugging purposes.

        Returns:
            ProbeResult: Enriched result containing status, timing, timestamp,
                tier name, and exception details if applicable.

        Raises:
            No exceptions are raised - all errors are captured and converted
            to failed results with appropriate error details.
        """
        logger.debug(f"Running probe step: {step.name}")
        step_start_time = arrow.utcnow().float_timestamp
        executed_at = arrow.utcnow().isoformat()

        try:
            step_result = step.run()
        except Exception as e:  # noqa: BLE001 - steps never raise past this boundary
            return self._handle_step_exception(step, e, step_start_time, tier_name)

        step_result.executed_at = executed_at
        step_result.execution_time_ms = (arrow.utcnow().float_timestamp - step_start_time) * 1000
        step_result.tier_name = tier_name
        return step_result

    def _handle_step_exception(
        self,
        step: ProbeStep,
        e: Exception,
        step_start_time: float,
        tier_name: str,
    ) -> ProbeResult:
        """Convert an exception raised by a step into a failed result.

        Args:
            step: The ProbeStep instance that threw the exception.
            e: The exception that was thrown during step execution.
            step_start_time: Timestamp when the step started, used to
                             calculate partial execution time.
            tier_name: Name of the tier that was executing the step.

        Returns:
            ProbeResult: A failed result classified as ``step_error``.
        """
        error_result = ProbeResult(
            status=CheckStatus.FAILED,
            detail=f"{step.name} probe error: {e}",
            step_name=step.name,
            failure=FailureKind.STEP_ERROR,
            tier_name=tier_name,
            execution_time_ms=(arrow.utcnow().float_timestamp - step_start_time) * 1000,
            executed_at=arrow.utcnow().isoformat(),
            details={"exception": str(e), "type": type(e).__name__},
        )

        logger.error(f"Probe step {step.name} threw exception: {e}")
        return error_result
