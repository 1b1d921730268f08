"""Enums for the release gate."""

from enum import StrEnum


class ArtifactState(StrEnum):
    """Lifecycle state of a built artifact."""

    PROVISIONAL = "provisional"
    PROMOTED = "promoted"
    QUARANTINED = "quarantined"


class ReleaseStatus(StrEnum):
    """Outcome of one release attempt."""

    PROMOTED = "promoted"
    QUARANTINED = "quarantined"
    BUILD_FAILED = "build_failed"


class TriggerKind(StrEnum):
    """What kind of push started the release attempt."""

    BRANCH = "branch"
    TAG = "tag"
