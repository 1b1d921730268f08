"""Release coordinator: build, verify in parallel, promote all-or-nothing.

One ``release`` call is one attempt:

1. Build: the artifact builder is called exactly once. A build failure ends
   the attempt; no job runs and no tag is applied.
2. Fan-out: every configured verification job is submitted to a thread pool
   against the same artifact. Each job receives its own copy of the artifact.
3. Join: the coordinator waits for every job. A job that outlives its own
   timeout, or the overall release budget, is recorded as failed and
   abandoned; siblings are never cancelled because of it.
   Job timeouts are capped at the budget.
4. Decision: only when every job passed are the target tags applied. A
   failed attempt leaves the artifact quarantined under its provisional tag.

Promotion is ordered strictly after the join: no tag is ever applied while a
job result is outstanding.

Typical Usage:
    coordinator = ReleaseCoordinator(
        builder=DockerArtifactBuilder("nut-cgi"),
        jobs=[ContainerSelfTestJob(), VulnerabilityScanJob()],
        publisher=DockerTagPublisher(),
        tag_policy=TagPolicy(),
    )
    outcome = coordinator.release(description, ReleaseTrigger.from_ref("refs/tags/v1.2.3"))
"""

import time
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

import arrow
from loguru import logger

from nut_cgi_gate.exceptions import TagPolicyError
from nut_cgi_gate.health import FailureKind

from .base import ArtifactBuilder, TagPublisher, VerificationJob
from .enums import ArtifactState, ReleaseStatus
from .job_executor import JobExecutor
from .models import Artifact, BuildDescription, ReleaseOutcome, ReleaseTrigger, VerificationResult
from .tags import TagPolicy

DEFAULT_RELEASE_BUDGET = 1800.0


class ReleaseCoordinator:
    """Drives release attempts from build description to promotion decision.

    Attributes:
        builder: Produces the candidate artifact
        jobs: Verification jobs, reported in this order
        publisher: Applies promotion tags
        tag_policy: Declared trigger -> tag set mapping
        budget: Wall-clock seconds for the whole verification fan-out
    """

    def __init__(
        self,
        builder: ArtifactBuilder,
        jobs: Iterable[VerificationJob],
        publisher: TagPublisher,
        tag_policy: TagPolicy | None = None,
        budget: float = DEFAULT_RELEASE_BUDGET,
        max_workers: int | None = None,
    ):
        """Initialize the coordinator.

        Raises:
            ValueError: If job names are not unique or the budget is not positive
        """
        self.builder = builder
        self.jobs = tuple(jobs)
        self.publisher = publisher
        self.tag_policy = tag_policy or TagPolicy()
        self.budget = budget
        self.max_workers = max_workers

        names = self.get_job_names()
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate verification job names: {names}")
        if budget <= 0:
            raise ValueError(f"Release budget must be positive, got {budget}")
        for job in self.jobs:
            if job.timeout > budget:
                logger.warning(f"Job {job.name} timeout {job.timeout:g}s capped at the release budget of {budget:g}s")
                job.timeout = budget

        self._job_executor = JobExecutor()

    def release(self, description: BuildDescription, trigger: ReleaseTrigger) -> ReleaseOutcome:
        """Run one release attempt.

        Args:
            description: What to build
            trigger: The push that started the attempt; selects the tag set

        Returns:
            ReleaseOutcome: Always returned; this method does not raise
        """
        logger.info(f"Starting release attempt for {description.commit} ({trigger})")
        start_time = arrow.utcnow().float_timestamp

        try:
            artifact = self.builder.build(description)
        except Exception as e:  # noqa: BLE001 - build failure is an outcome, not an error
            logger.error(f"Build failed for {description.commit}: {e}")
            return self._finish(
                ReleaseOutcome(
                    status=ReleaseStatus.BUILD_FAILED,
                    trigger=str(trigger),
                    failure=FailureKind.BUILD_FAILED,
                    message=f"Build failed: {e}",
                ),
                start_time,
            )
        logger.info(f"Built candidate {artifact.reference}")

        job_results = self._run_jobs(artifact)
        outcome = self._decide(artifact, trigger, job_results)
        return self._finish(outcome, start_time)

    def get_job_names(self) -> list[str]:
        """Get names of all configured jobs."""
        return [job.name for job in self.jobs]

    def _run_jobs(self, artifact: Artifact) -> list[VerificationResult]:
        """Fan out every job and join all of them, failing closed on timeouts."""
        if not self.jobs:
            return []

        executor = ThreadPoolExecutor(max_workers=self.max_workers or len(self.jobs), thread_name_prefix="verify")
        start = time.monotonic()
        budget_deadline = start + self.budget

        futures: dict[Future, VerificationJob] = {
            executor.submit(self._job_executor.execute_job, job, artifact.model_copy(deep=True)): job for job in self.jobs
        }
        deadlines = {future: min(start + job.timeout, budget_deadline) for future, job in futures.items()}
        results: dict[str, VerificationResult] = {}
        pending = set(futures)

        try:
            while pending:
                now = time.monotonic()
                for future in [f for f in pending if not f.done() and deadlines[f] <= now]:
                    pending.discard(future)
                    future.cancel()
                    job = futures[future]
                    if deadlines[future] >= budget_deadline:
                        reason = f"did not finish within the release budget of {self.budget:g}s"
                    else:
                        reason = f"timed out after {job.timeout:g}s"
                    results[job.name] = self._job_executor.timed_out_result(job, reason)
                if not pending:
                    break

                remaining = max(0.0, min(deadlines[f] for f in pending) - time.monotonic())
                done, _ = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    pending.discard(future)
                    results[futures[future].name] = self._collect(future, futures[future])
        finally:
            # Hanging jobs are abandoned, not awaited. The interpreter still joins
            # their threads at exit, so jobs must bound their own work. Command jobs
            # pass job.timeout, capped at the budget above, to subprocess.run.
            executor.shutdown(wait=False, cancel_futures=True)

        return [results[job.name] for job in self.jobs]

    def _collect(self, future: Future, job: VerificationJob) -> VerificationResult:
        error = future.exception()
        if error is None:
            return future.result()
        # JobExecutor already converts Exception; this covers BaseException subclasses
        logger.error(f"Verification job {job.name} aborted: {error!r}")
        return VerificationResult(
            job_name=job.name,
            passed=False,
            report=f"Job aborted: {error!r}",
            failure=FailureKind.VERIFICATION_FAILED,
        )

    def _decide(self, artifact: Artifact, trigger: ReleaseTrigger, job_results: list[VerificationResult]) -> ReleaseOutcome:
        """Promote iff every job passed; runs only after all results are in."""
        failures = [result.job_name for result in job_results if not result.passed]
        outcome = ReleaseOutcome(
            status=ReleaseStatus.QUARANTINED,
            artifact_id=artifact.id,
            trigger=str(trigger),
            job_results=job_results,
            failures=failures,
        )

        try:
            target_tags = self.tag_policy.resolve(trigger)
        except TagPolicyError as e:
            artifact.state = ArtifactState.QUARANTINED
            outcome.failure = FailureKind.PROMOTION_FAILED
            outcome.message = f"No promotion tags: {e}; {artifact.reference} quarantined"
            logger.error(outcome.message)
            return outcome
        outcome.target_tags = sorted(target_tags)

        if failures:
            artifact.state = ArtifactState.QUARANTINED
            outcome.failure = FailureKind.VERIFICATION_FAILED
            outcome.message = f"Verification failed: {', '.join(failures)}; {artifact.reference} quarantined"
            logger.warning(outcome.message)
            return outcome

        missing = target_tags - artifact.promoted_tags
        if missing:
            try:
                self.publisher.apply_tags(artifact, sorted(missing))
            except Exception as e:  # noqa: BLE001 - publisher guarantees nothing was left applied
                artifact.state = ArtifactState.QUARANTINED
                outcome.failure = FailureKind.PROMOTION_FAILED
                outcome.message = f"Promotion failed: {e}; {artifact.reference} quarantined"
                logger.error(outcome.message)
                return outcome
            artifact.promoted_tags |= missing
        else:
            logger.info(f"{artifact.reference} already carries every target tag, nothing to apply")

        artifact.state = ArtifactState.PROMOTED
        outcome.status = ReleaseStatus.PROMOTED
        outcome.promoted = True
        outcome.applied_tags = sorted(missing)
        outcome.references = artifact.tag_references()
        outcome.message = f"Promoted {artifact.reference} as {', '.join(sorted(target_tags)) or 'no additional tags'}"
        logger.info(outcome.message)
        return outcome

    @staticmethod
    def _finish(outcome: ReleaseOutcome, start_time: float) -> ReleaseOutcome:
        outcome.total_execution_time_ms = (arrow.utcnow().float_timestamp - start_time) * 1000
        return outcome

    def __repr__(self) -> str:
        return f"ReleaseCoordinator(jobs={self.get_job_names()}, budget={self.budget:g})"
