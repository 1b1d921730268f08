"""Common exceptions for the release gate.

Adapters raise these; the release coordinator catches them at its boundary
and turns them into outcomes.
"""


class GateError(Exception):
    """Base class for release gate errors."""


class BuildFailedError(GateError):
    """Raised when the artifact builder cannot produce a candidate artifact."""

    def __init__(self, commit: str, reason: str):
        self.commit = commit
        self.reason = reason
        super().__init__(f"Build failed for {commit}: {reason}")


class PromotionError(GateError):
    """Raised when promotion tags could not all be applied.

    ``applied`` lists tags that were applied and rolled back before raising.
    """

    def __init__(self, artifact_id: str, reason: str, applied: list[str] | None = None):
        self.artifact_id = artifact_id
        self.reason = reason
        self.applied = applied or []
        super().__init__(f"Promotion of {artifact_id} failed: {reason}")


class TagPolicyError(GateError):
    """Raised when a release trigger cannot be parsed or rendered into tags."""

    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Invalid release trigger '{ref}': {reason}")
