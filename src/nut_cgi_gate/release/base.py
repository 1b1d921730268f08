"""Base abstractions for the release gate: verification jobs and external collaborators."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from nut_cgi_gate.health import FailureKind

from .models import Artifact, BuildDescription, VerificationResult

DEFAULT_JOB_TIMEOUT = 600.0


@runtime_checkable
class ArtifactBuilder(Protocol):
    """Produces an addressable artifact from a build description.

    Implementations raise ``BuildFailedError`` (or any exception) on failure.
    """

    def build(self, description: BuildDescription) -> Artifact: ...


@runtime_checkable
class TagPublisher(Protocol):
    """Applies promotion tags to an artifact, all or nothing.

    Implementations must leave no tag behind when they raise.
    """

    def apply_tags(self, artifact: Artifact, tags: Iterable[str]) -> None: ...


class VerificationJob(ABC):
    """Abstract base class for a named, independently runnable check of an artifact."""

    def __init__(self, name: str, timeout: float = DEFAULT_JOB_TIMEOUT):
        """Initialize the job.

        Args:
            name: Job name, unique within a coordinator
            timeout: Seconds the coordinator waits for this job before recording it failed
        """
        if timeout <= 0:
            raise ValueError(f"Job '{name}' timeout must be positive, got {timeout}")
        self.name = name
        self.timeout = timeout

    @abstractmethod
    def _execute(self, artifact: Artifact) -> VerificationResult:
        """Verify the artifact.

        This method should be implemented by subclasses. It must not depend
        on the result of any other job.
        """

    def run(self, artifact: Artifact) -> VerificationResult:
        """Verify the artifact; ``JobExecutor`` owns exception handling."""
        return self._execute(artifact)

    def passed(self, report: str, findings: list[str] | None = None, details: dict[str, Any] | None = None) -> VerificationResult:
        """Return a passing verification result."""
        return VerificationResult(
            job_name=self.name,
            passed=True,
            report=report,
            findings=findings or [],
            details=details or {},
        )

    def failed(self, report: str, findings: list[str] | None = None, details: dict[str, Any] | None = None) -> VerificationResult:
        """Return a failed verification result."""
        return VerificationResult(
            job_name=self.name,
            passed=False,
            report=report,
            findings=findings or [],
            details=details or {},
            failure=FailureKind.VERIFICATION_FAILED,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', timeout={self.timeout})"
