"""Docker-backed artifact builder and tag publisher."""

from collections.abc import Iterable

import docker
from docker.errors import APIError, BuildError, DockerException, ImageNotFound
from loguru import logger

from nut_cgi_gate.constants import OCI_REVISION_LABEL
from nut_cgi_gate.exceptions import BuildFailedError, PromotionError

from .models import Artifact, BuildDescription


class DockerArtifactBuilder:
    """Builds the image and tags it provisionally with the commit SHA."""

    def __init__(self, repository: str, client: docker.DockerClient | None = None):
        self.repository = repository
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def build(self, description: BuildDescription) -> Artifact:
        """Build ``description`` into ``<repository>:<commit>``.

        Tags the image already carries in this repository (from an earlier
        promotion of identical content) are reported as promoted tags.

        Raises:
            BuildFailedError: If the docker build fails
        """
        reference = f"{self.repository}:{description.commit}"
        labels = {OCI_REVISION_LABEL: description.commit, **description.labels}
        logger.info(f"Building {reference} from {description.context}")

        try:
            image, build_log = self.client.images.build(
                path=description.context,
                dockerfile=description.dockerfile,
                tag=reference,
                buildargs=description.build_args,
                labels=labels,
                rm=True,
            )
        except BuildError as e:
            raise BuildFailedError(description.commit, e.msg) from e
        except (APIError, DockerException, OSError) as e:
            raise BuildFailedError(description.commit, str(e)) from e

        for chunk in build_log:
            if "stream" in chunk:
                logger.trace(chunk["stream"].rstrip())

        prefix = f"{self.repository}:"
        existing = {tag[len(prefix) :] for tag in image.tags if tag.startswith(prefix)}
        return Artifact(
            id=description.commit,
            repository=self.repository,
            provisional_tags={description.commit},
            promoted_tags=existing - {description.commit},
        )


class DockerTagPublisher:
    """Tags the candidate image locally and optionally pushes the tags.

    Local tags are rolled back if any tag or push fails: a tag that pointed at
    another image before promotion is pointed back at it, a new tag is
    removed. Tags already pushed to a registry before a later push failed
    cannot be withdrawn from here.
    """

    def __init__(self, push: bool = False, client: docker.DockerClient | None = None):
        self.push = push
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def apply_tags(self, artifact: Artifact, tags: Iterable[str]) -> None:
        """Apply every tag in ``tags`` or none of them.

        Raises:
            PromotionError: If tagging or pushing fails
        """
        tags = sorted(set(tags))
        applied: list[str] = []
        previous: dict[str, str | None] = {}
        try:
            image = self.client.images.get(artifact.reference)
            for tag in tags:
                previous[tag] = self._current_image_id(artifact.repository, tag)
                if not image.tag(artifact.repository, tag=tag):
                    raise PromotionError(artifact.id, f"docker refused tag '{tag}'")
                applied.append(tag)
                logger.info(f"Tagged {artifact.reference} as {artifact.repository}:{tag}")
            if self.push:
                for tag in tags:
                    self._push(artifact, tag)
        except (PromotionError, DockerException) as e:
            self._rollback(artifact, applied, previous)
            if isinstance(e, PromotionError):
                e.applied = applied
                raise
            raise PromotionError(artifact.id, str(e), applied) from e

    def _push(self, artifact: Artifact, tag: str) -> None:
        logger.info(f"Pushing {artifact.repository}:{tag}")
        for line in self.client.images.push(artifact.repository, tag=tag, stream=True, decode=True):
            if "error" in line:
                raise PromotionError(artifact.id, f"push of '{tag}' failed: {line['error']}")

    def _current_image_id(self, repository: str, tag: str) -> str | None:
        try:
            return self.client.images.get(f"{repository}:{tag}").id
        except ImageNotFound:
            return None

    def _rollback(self, artifact: Artifact, applied: list[str], previous: dict[str, str | None]) -> None:
        for tag in applied:
            reference = f"{artifact.repository}:{tag}"
            try:
                if previous.get(tag):
                    self.client.images.get(previous[tag]).tag(artifact.repository, tag=tag)
                    logger.warning(f"Rolled back tag {reference} to {previous[tag]}")
                else:
                    self.client.images.remove(reference, noprune=True)
                    logger.warning(f"Rolled back tag {reference}")
            except (ImageNotFound, APIError) as e:
                logger.error(f"Could not roll back tag {reference}: {e}")
