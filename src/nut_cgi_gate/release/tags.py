"""Mapping from release triggers to promotion tag sets.

The mapping is declared configuration: templates per branch and per version
component. Resolution only substitutes values into those templates, so the
same trigger always yields the same tag set.

Template placeholders:
- branch templates: ``{branch}``
- version templates: ``{version}``, ``{major}``, ``{minor}``, ``{patch}``

Tags pushed for versions that are not semantic versions promote under the
sanitized tag name alone.
"""

import re

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from nut_cgi_gate.exceptions import TagPolicyError

from .enums import TriggerKind
from .models import ReleaseTrigger

SEMVER_PATTERN = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)
_INVALID_TAG_CHARS = re.compile(r"[^A-Za-z0-9_.-]")
_MAX_TAG_LENGTH = 128

_SAMPLE_BRANCH = {"branch": "main"}
_SAMPLE_VERSION = {"version": "1.2.3", "major": "1", "minor": "2", "patch": "3"}


def sanitize_tag(value: str) -> str:
    """Turn an arbitrary ref name into a valid image tag."""
    tag = _INVALID_TAG_CHARS.sub("-", value).lstrip(".-")
    return tag[:_MAX_TAG_LENGTH]


class TagPolicy(BaseModel):
    """Declared trigger -> tag set mapping."""

    branch_tags: dict[str, list[str]] = Field(
        default_factory=lambda: {"main": ["{branch}"]},
        description="Tag templates applied when the named branch is pushed",
    )
    version_tags: list[str] = Field(
        default_factory=lambda: ["{version}", "{major}.{minor}", "{major}", "latest"],
        description="Tag templates applied when a semantic version tag is pushed",
    )
    prerelease_tags: list[str] = Field(
        default_factory=lambda: ["{version}"],
        description="Tag templates applied when a prerelease version tag is pushed",
    )

    @model_validator(mode="after")
    def check_templates(self) -> "TagPolicy":
        """Reject templates with unknown placeholders up front."""
        for branch, templates in self.branch_tags.items():
            self._render_all(f"refs/heads/{branch}", templates, _SAMPLE_BRANCH)
        self._render_all("refs/tags/v1.2.3", self.version_tags, _SAMPLE_VERSION)
        self._render_all("refs/tags/v1.2.3-rc.1", self.prerelease_tags, _SAMPLE_VERSION)
        return self

    def resolve(self, trigger: ReleaseTrigger) -> set[str]:
        """Return the tag set promotion applies for ``trigger``.

        Args:
            trigger: The push that started the release

        Returns:
            set[str]: Target tags; empty when nothing is declared for the trigger
        """
        if trigger.kind == TriggerKind.BRANCH:
            templates = self.branch_tags.get(trigger.name, [])
            if not templates:
                logger.info(f"No promotion tags declared for branch '{trigger.name}'")
            return self._render_all(str(trigger), templates, {"branch": sanitize_tag(trigger.name)})

        match = SEMVER_PATTERN.match(trigger.name)
        if match is None:
            logger.info(f"Tag '{trigger.name}' is not a semantic version, promoting under the tag name only")
            return {sanitize_tag(trigger.name)}

        parts = match.groupdict()
        version = f"{parts['major']}.{parts['minor']}.{parts['patch']}"
        if parts["prerelease"]:
            version = f"{version}-{parts['prerelease']}"
            templates = self.prerelease_tags
        else:
            templates = self.version_tags
        values = {"version": version, "major": parts["major"], "minor": parts["minor"], "patch": parts["patch"]}
        return self._render_all(str(trigger), templates, values)

    @staticmethod
    def _render_all(ref: str, templates: list[str], values: dict[str, str]) -> set[str]:
        tags = set()
        for template in templates:
            try:
                tag = template.format(**values)
            except (KeyError, IndexError, ValueError) as e:
                raise TagPolicyError(ref, f"bad tag template '{template}': {e}") from e
            tag = sanitize_tag(tag)
            if not tag:
                raise TagPolicyError(ref, f"tag template '{template}' renders to an empty tag")
            tags.add(tag)
        return tags
