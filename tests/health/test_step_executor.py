"""Tests for StepExecutor class."""

import pytest

from nut_cgi_gate.health import CheckStatus, FailureKind, ProbeResult, ProbeStep
from nut_cgi_gate.health.step_executor import StepExecutor


class MockProbeStep(ProbeStep):
    """Mock probe step for testing."""

    def __init__(self, name: str, should_fail: bool = False, should_raise: bool = False):
        super().__init__(name)
        self.should_fail = should_fail
        self.should_raise = should_raise
        self.execute_called = False

    def _execute(self) -> ProbeResult:
        """Mock execute method."""
        self.execute_called = True

        if self.should_raise:
            raise ValueError(f"Mock step {self.name} failed")

        if self.should_fail:
            return self.failed(FailureKind.TRANSPORT_FAILURE, f"Step {self.name} failed")
        return self.success(f"Step {self.name} passed")


class TestStepExecutor:
    """Test cases for StepExecutor."""

    def test_execute_successful_step(self):
        """Test executing a successful step."""
        executor = StepExecutor()
        step = MockProbeStep("test_step")

        result = executor.execute_step(step, "test_tier")

        assert result.status == CheckStatus.SUCCESS
        assert result.passed
        assert result.step_name == "test_step"
        assert result.tier_name == "test_tier"
        assert result.detail == "Step test_step passed"
        assert result.failure is None
        assert result.execution_time_ms is not None
        assert result.execution_time_ms >= 0
        assert result.executed_at is not None
        assert step.execute_called is True

    def test_execute_failing_step(self):
        """Test executing a failing step."""
        executor = StepExecutor()
        step = MockProbeStep("failing_step", should_fail=True)

        result = executor.execute_step(step, "test_tier")

        assert result.status == CheckStatus.FAILED
        assert not result.passed
        assert result.failure == FailureKind.TRANSPORT_FAILURE
        assert result.detail == "Step failing_step failed"
        assert result.tier_name == "test_tier"
        assert result.executed_at is not None

    def test_execute_step_with_exception(self):
        """A raising step becomes a failed result instead of propagating."""
        executor = StepExecutor()
        step = MockProbeStep("error_step", should_raise=True)

        result = executor.execute_step(step, "test_tier")

        assert result.status == CheckStatus.FAILED
        assert result.failure == FailureKind.STEP_ERROR
        assert result.step_name == "error_step"
        assert result.tier_name == "test_tier"
        assert "error_step probe error" in result.detail
        assert "Mock step error_step failed" in result.detail
        assert result.details["type"] == "ValueError"
        assert result.execution_time_ms is not None


class TestProbeStep:
    """Test ProbeStep base class."""

    def test_non_positive_timeout_rejected(self):
        """Every step must carry a positive timeout."""

        class ZeroTimeoutStep(MockProbeStep):
            def __init__(self):
                ProbeStep.__init__(self, "zero", timeout=0)

        with pytest.raises(ValueError, match="timeout must be positive"):
            ZeroTimeoutStep()

    def test_repr(self):
        step = MockProbeStep("repr_step")
        assert repr(step) == "MockProbeStep(name='repr_step', timeout=10.0)"
