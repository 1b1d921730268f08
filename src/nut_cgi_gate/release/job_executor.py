"""Job execution component for the release coordinator.

This module provides the JobExecutor class responsible for running a single
verification job inside a worker thread. It handles timing, exception
management, and result enrichment, so that a crashing job only ever produces
a failed result for itself.
"""

import arrow
from loguru import logger

from nut_cgi_gate.health import FailureKind

from .base import VerificationJob
from .models import Artifact, VerificationResult


class JobExecutor:
    """Handles individual verification job execution.

    Attributes:
        None (stateless executor - all state is in the results)
    """

    def execute_job(self, job: VerificationJob, artifact: Artifact) -> VerificationResult:
        """Execute a job and return its enriched result.

        Args:
            job: The job to run
            artifact: The artifact under verification (a private copy)

        Returns:
            VerificationResult: The job result with timing; exceptions are
                converted into failed results.
        """
        logger.info(f"Running verification job {job.name} against {artifact.reference}")
        start_time = arrow.utcnow().float_timestamp
        executed_at = arrow.utcnow().isoformat()

        try:
            result = job.run(artifact)
        except Exception as e:  # noqa: BLE001 - one job's crash must not abort its siblings
            logger.error(f"Verification job {job.name} threw exception: {e}")
            result = VerificationResult(
                job_name=job.name,
                passed=False,
                report=f"Job execution failed: {e}",
                failure=FailureKind.VERIFICATION_FAILED,
                details={"exception": str(e), "type": type(e).__name__},
            )

        # A job reports under its configured name whatever it returned
        result.job_name = job.name
        result.executed_at = executed_at
        result.execution_time_ms = (arrow.utcnow().float_timestamp - start_time) * 1000

        if result.passed:
            logger.info(f"Verification job {job.name} passed in {result.execution_time_ms:.0f}ms")
        else:
            logger.warning(f"Verification job {job.name} failed: {result.report}")
        return result

    def timed_out_result(self, job: VerificationJob, reason: str) -> VerificationResult:
        """Build the failed result recorded for a job that did not finish in time."""
        logger.warning(f"Verification job {job.name} {reason}")
        return VerificationResult(
            job_name=job.name,
            passed=False,
            report=f"Job {reason}",
            failure=FailureKind.TIMEOUT,
            timed_out=True,
            details={"timeout": job.timeout},
        )
