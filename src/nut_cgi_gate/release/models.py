"""Data models for the release gate."""

from typing import Any

import arrow
from pydantic import BaseModel, Field

from nut_cgi_gate.exceptions import TagPolicyError
from nut_cgi_gate.health import FailureKind

from .enums import ArtifactState, ReleaseStatus, TriggerKind


class BuildDescription(BaseModel):
    """Input of one build: where to build from and which commit it is."""

    context: str
    commit: str = Field(min_length=1)
    dockerfile: str = "Dockerfile"
    build_args: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)


class Artifact(BaseModel):
    """A built, addressable image identified by a content-derived id."""

    model_config = {"use_enum_values": True}

    id: str
    repository: str
    provisional_tags: set[str] = Field(default_factory=set)
    promoted_tags: set[str] = Field(default_factory=set)
    state: ArtifactState = ArtifactState.PROVISIONAL
    built_at: str = Field(default_factory=lambda: arrow.utcnow().isoformat())

    @property
    def reference(self) -> str:
        """Image reference under the provisional tag."""
        return f"{self.repository}:{self.id}"

    def tag_references(self) -> list[str]:
        """Every image reference the artifact is reachable under."""
        return [f"{self.repository}:{tag}" for tag in sorted(self.provisional_tags | self.promoted_tags)]


class ReleaseTrigger(BaseModel):
    """The push that started a release attempt."""

    model_config = {"use_enum_values": True}

    kind: TriggerKind
    name: str

    @classmethod
    def from_ref(cls, ref: str) -> "ReleaseTrigger":
        """Parse a git ref such as ``refs/heads/main`` or ``refs/tags/v1.2.3``.

        Raises:
            TagPolicyError: If the ref is neither a branch nor a tag
        """
        for prefix, kind in (("refs/heads/", TriggerKind.BRANCH), ("refs/tags/", TriggerKind.TAG)):
            if ref.startswith(prefix) and ref[len(prefix) :]:
                return cls(kind=kind, name=ref[len(prefix) :])
        raise TagPolicyError(ref, "expected refs/heads/<branch> or refs/tags/<tag>")

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}"


class VerificationResult(BaseModel):
    """Result of one verification job against an artifact."""

    model_config = {"use_enum_values": True}

    job_name: str
    passed: bool
    report: str
    findings: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
    failure: FailureKind | None = None
    timed_out: bool = False
    executed_at: str | None = None  # ISO 8601 UTC timestamp
    execution_time_ms: float | None = None


class ReleaseOutcome(BaseModel):
    """Aggregate outcome of one release attempt."""

    model_config = {"use_enum_values": True}

    status: ReleaseStatus
    artifact_id: str | None = None
    promoted: bool = False
    trigger: str | None = None
    job_results: list[VerificationResult] = Field(default_factory=list)
    target_tags: list[str] = Field(default_factory=list)
    applied_tags: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    failures: list[str] = Field(default_factory=list)
    failure: FailureKind | None = None
    message: str = ""
    executed_at: str = Field(default_factory=lambda: arrow.utcnow().isoformat())
    total_execution_time_ms: float | None = None
