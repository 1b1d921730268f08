"""Tier implementation for grouped probe steps.

A tier is an ordered group of probe steps that must all pass together.
Tiers are evaluated in order of increasing cost and specificity: a cheap
transport check first, a semantic domain check last. Within a tier the
first failing step ends the tier, and its detail becomes the tier detail.

Typical Usage:
    tier = Tier(
        name="transport",
        description="Web server responds",
        required_in_modes={HealthMode.BASIC, HealthMode.STRICT},
        steps=[TransportStep(client)],
    )

    result = tier.evaluate()
    if result.passed:
        print("Web server is reachable")
"""

from collections.abc import Iterable

import arrow
from loguru import logger

from .base import ProbeStep
from .enums import CheckStatus, HealthMode
from .models import ProbeResult, TierResult
from .step_executor import StepExecutor

ALL_MODES = frozenset(HealthMode)


class Tier:
    """An immutable, ordered group of probe steps.

    Attributes:
        name: Unique identifier for this tier
        description: Human-readable description of the tier purpose
        required_in_modes: Modes in which this tier is evaluated
        steps: Ordered tuple of ProbeStep objects
    """

    def __init__(
        self,
        name: str,
        description: str,
        steps: Iterable[ProbeStep],
        required_in_modes: Iterable[HealthMode] = ALL_MODES,
    ):
        """Initialize the tier.

        Args:
            name: Name of this tier (used for identification and logging)
            description: Description of what this tier checks
            steps: Probe steps to run, in order
            required_in_modes: Modes in which this tier is evaluated

        Raises:
            ValueError: If the tier has no steps, no modes, or duplicate step names
        """
        steps = tuple(steps)
        modes = frozenset(HealthMode(mode) for mode in required_in_modes)
        if not steps:
            raise ValueError(f"Tier '{name}' must contain at least one probe step")
        if not modes:
            raise ValueError(f"Tier '{name}' must be required in at least one mode")
        step_names = [step.name for step in steps]
        if len(set(step_names)) != len(step_names):
            raise ValueError(f"Tier '{name}' has duplicate step names: {step_names}")

        self.name = name
        self.description = description
        self.steps = steps
        self.required_in_modes = modes
        self._step_executor = StepExecutor()

    def is_required_in(self, mode: HealthMode) -> bool:
        """Check whether this tier is evaluated in ``mode``."""
        return mode in self.required_in_modes

    def get_step_names(self) -> list[str]:
        """Get names of all steps in this tier."""
        return [step.name for step in self.steps]

    def evaluate(self) -> TierResult:
        """Run the steps of this tier in order, stopping at the first failure.

        Returns:
            TierResult: Result of evaluating this tier
        """
        logger.debug(f"Evaluating tier: {self.name}")
        start_time = arrow.utcnow().float_timestamp

        result = TierResult(
            tier_name=self.name,
            status=CheckStatus.RUNNING,
            detail=f"Evaluating {self.name} tier",
            executed_at=arrow.utcnow().isoformat(),
        )

        for index, step in enumerate(self.steps):
            step_result = self._step_executor.execute_step(step, self.name)
            result.step_results.append(step_result)

            if not step_result.passed:
                logger.warning(f"Step {step.name} failed in tier {self.name}: {step_result.detail}")
                result.status = CheckStatus.FAILED
                result.detail = step_result.detail
                result.first_failing_step = step.name
                result.failure = step_result.failure
                self._mark_remaining_steps_skipped(result, self.steps[index + 1 :])
                break

        if result.status == CheckStatus.RUNNING:
            result.status = CheckStatus.SUCCESS
            result.detail = f"Tier '{self.name}' passed: {len(self.steps)}/{len(self.steps)} steps"

        result.execution_time_ms = (arrow.utcnow().float_timestamp - start_time) * 1000
        logger.debug(f"Tier {self.name} completed with status {result.status} in {result.execution_time_ms:.1f}ms")
        return result

    def skipped_result(self, status: CheckStatus, reason: str) -> TierResult:
        """Build a result for a tier that was not evaluated."""
        return TierResult(
            tier_name=self.name,
            status=status,
            detail=reason,
            step_results=[
                ProbeResult(status=status, detail=reason, step_name=step.name, tier_name=self.name) for step in self.steps
            ],
        )

    def _mark_remaining_steps_skipped(self, result: TierResult, remaining: tuple[ProbeStep, ...]) -> None:
        for step in remaining:
            result.step_results.append(
                ProbeResult(
                    status=CheckStatus.SKIPPED,
                    detail=f"Skipped due to failure of step '{result.first_failing_step}'",
                    step_name=step.name,
                    tier_name=self.name,
                )
            )
            logger.debug(f"Skipping step {step.name}")

    def __str__(self) -> str:
        return f"Tier(name='{self.name}', steps={len(self.steps)})"

    def __repr__(self) -> str:
        modes = sorted(str(mode) for mode in self.required_in_modes)
        return f"Tier(name='{self.name}', description='{self.description}', modes={modes}, steps={self.get_step_names()})"
