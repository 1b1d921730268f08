"""Build -> verify -> promote release gating.

The coordinator builds a candidate artifact once, fans verification jobs out
concurrently against it, joins every result and promotes the artifact under
its target tags only when all jobs passed. Otherwise the artifact stays
quarantined under its provisional commit tag.
"""

from .base import ArtifactBuilder, TagPublisher, VerificationJob
from .coordinator import ReleaseCoordinator
from .enums import ArtifactState, ReleaseStatus, TriggerKind
from .models import Artifact, BuildDescription, ReleaseOutcome, ReleaseTrigger, VerificationResult
from .tags import TagPolicy

__all__ = [
    # Core models
    "Artifact",
    "ArtifactState",
    "BuildDescription",
    "ReleaseOutcome",
    "ReleaseStatus",
    "ReleaseTrigger",
    "TriggerKind",
    "VerificationResult",
    # Protocols and components
    "ArtifactBuilder",
    "TagPublisher",
    "VerificationJob",
    "ReleaseCoordinator",
    "TagPolicy",
]
