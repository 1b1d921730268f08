"""Tiered health evaluation engine.

This module provides a readiness validation system organised in tiers:
- Probe steps are single checks with a timeout and a diagnostic on failure
- Tiers group steps that must all pass together
- The engine evaluates tiers in order and stops at the first failing tier
- A basic/strict mode enables or disables trailing tiers

The engine is decoupled from specific probe implementations, which live in
the probes submodule.
"""

from .base import ProbeStep
from .builder import TierEngineBuilder
from .engine import TierEngine
from .enums import CheckStatus, FailureKind, HealthMode, HealthState
from .models import HealthReport, ProbeResult, TierResult
from .tier import ALL_MODES, Tier

__all__ = [
    # Core models
    "CheckStatus",
    "FailureKind",
    "HealthMode",
    "HealthState",
    "HealthReport",
    "ProbeResult",
    "TierResult",
    # Engine components
    "ALL_MODES",
    "ProbeStep",
    "Tier",
    "TierEngine",
    "TierEngineBuilder",
]
