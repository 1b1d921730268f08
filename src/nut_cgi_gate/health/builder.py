"""Builder for constructing tier engines."""

from collections.abc import Iterable

from nut_cgi_gate.health.base import ProbeStep
from nut_cgi_gate.health.engine import TierEngine
from nut_cgi_gate.health.enums import HealthMode
from nut_cgi_gate.health.tier import ALL_MODES, Tier


class TierEngineBuilder:
    """Fluent builder collecting tiers and their steps before freezing them into an engine."""

    def __init__(self):
        """Initialize the builder."""
        self._tiers: list[tuple[str, str, frozenset[HealthMode], list[ProbeStep]]] = []
        self._current: list[ProbeStep] | None = None

    def tier(
        self,
        name: str,
        description: str,
        modes: Iterable[HealthMode] = ALL_MODES,
    ) -> "TierEngineBuilder":
        """Start a new tier.

        Args:
            name: Tier name
            description: Tier description
            modes: Modes in which the tier is evaluated

        Returns:
            This builder for method chaining

        Raises:
            ValueError: If tier name already exists
        """
        if any(existing[0] == name for existing in self._tiers):
            raise ValueError(f"Tier '{name}' already exists")
        self._current = []
        self._tiers.append((name, description, frozenset(modes), self._current))
        return self

    def step(self, step: ProbeStep) -> "TierEngineBuilder":
        """Add a step to the current tier.

        Raises:
            ValueError: If no current tier
        """
        if self._current is None:
            raise ValueError("No current tier. Call tier() first.")
        self._current.append(step)
        return self

    def steps(self, steps: Iterable[ProbeStep]) -> "TierEngineBuilder":
        """Add multiple steps to the current tier.

        Raises:
            ValueError: If no current tier
        """
        for step in steps:
            self.step(step)
        return self

    def build(self) -> TierEngine:
        """Build the engine; tiers are immutable from here on.

        Returns:
            Configured TierEngine
        """
        return TierEngine(
            Tier(name, description, steps, required_in_modes=modes) for name, description, modes, steps in self._tiers
        )

    def __str__(self) -> str:
        current = self._tiers[-1][0] if self._tiers else "None"
        return f"TierEngineBuilder(tiers={len(self._tiers)}, current={current})"
