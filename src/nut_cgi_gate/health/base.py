"""Base abstraction for probe steps."""

from abc import ABC, abstractmethod
from typing import Any

# Import models from separate module to avoid circular dependencies
from .enums import CheckStatus, FailureKind
from .models import ProbeResult

DEFAULT_STEP_TIMEOUT = 10.0


class ProbeStep(ABC):
    """Abstract base class for a single check against a target service."""

    def __init__(self, name: str, timeout: float = DEFAULT_STEP_TIMEOUT):
        """Initialize the probe step.

        Args:
            name: The name of this step (used in result.step_name field)
            timeout: Upper bound in seconds for the underlying operation
        """
        if timeout <= 0:
            raise ValueError(f"Step '{name}' timeout must be positive, got {timeout}")
        self.name = name
        self.timeout = timeout

    @abstractmethod
    def _execute(self) -> ProbeResult:
        """Execute the probe and return the result.

        This method should be implemented by subclasses.

        Returns:
            ProbeResult: The result of the probe
        """

    def run(self) -> ProbeResult:
        """Execute the probe step.

        Exceptions are not handled here; ``StepExecutor`` owns that boundary.

        Returns:
            ProbeResult: The result of the probe
        """
        return self._execute()

    def success(self, detail: str, details: dict[str, Any] | None = None) -> ProbeResult:
        """Return a passing probe result."""
        return ProbeResult(
            step_name=self.name,
            status=CheckStatus.SUCCESS,
            detail=detail,
            details=details or {},
        )

    def failed(self, failure: FailureKind, detail: str, details: dict[str, Any] | None = None) -> ProbeResult:
        """Return a failed probe result classified by ``failure``."""
        return ProbeResult(
            step_name=self.name,
            status=CheckStatus.FAILED,
            detail=detail,
            failure=failure,
            details=details or {},
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', timeout={self.timeout})"
