"""Tests for the docker-backed builder and publisher."""

from unittest.mock import Mock

import pytest
from docker.errors import APIError, BuildError, ImageNotFound

from nut_cgi_gate.constants import OCI_REVISION_LABEL
from nut_cgi_gate.exceptions import BuildFailedError, PromotionError
from nut_cgi_gate.release import Artifact, ArtifactBuilder, BuildDescription, TagPublisher
from nut_cgi_gate.release.docker_adapters import DockerArtifactBuilder, DockerTagPublisher

ARTIFACT = Artifact(id="abc1234", repository="nut-cgi", provisional_tags={"abc1234"})


class TestDockerArtifactBuilder:
    def test_satisfies_protocol(self):
        assert isinstance(DockerArtifactBuilder("nut-cgi", client=Mock()), ArtifactBuilder)

    def test_build(self):
        image = Mock(tags=["nut-cgi:abc1234"])
        client = Mock()
        client.images.build.return_value = (image, iter([{"stream": "Step 1/5 : FROM debian:bookworm-slim\n"}]))

        artifact = DockerArtifactBuilder("nut-cgi", client=client).build(
            BuildDescription(context="/src", commit="abc1234", build_args={"NUT_VERSION": "2.8.1"})
        )

        assert artifact.id == "abc1234"
        assert artifact.reference == "nut-cgi:abc1234"
        assert artifact.provisional_tags == {"abc1234"}
        assert artifact.promoted_tags == set()
        kwargs = client.images.build.call_args.kwargs
        assert kwargs["path"] == "/src"
        assert kwargs["tag"] == "nut-cgi:abc1234"
        assert kwargs["buildargs"] == {"NUT_VERSION": "2.8.1"}
        assert kwargs["labels"][OCI_REVISION_LABEL] == "abc1234"

    def test_existing_tags_reported_as_promoted(self):
        """Identical content already promoted keeps its tags."""
        image = Mock(tags=["nut-cgi:abc1234", "nut-cgi:1.2.3", "nut-cgi:latest", "other:latest"])
        client = Mock()
        client.images.build.return_value = (image, iter([]))

        artifact = DockerArtifactBuilder("nut-cgi", client=client).build(BuildDescription(context=".", commit="abc1234"))

        assert artifact.promoted_tags == {"1.2.3", "latest"}

    def test_build_error(self):
        client = Mock()
        client.images.build.side_effect = BuildError("COPY failed: no such file", build_log=[])

        with pytest.raises(BuildFailedError, match="COPY failed"):
            DockerArtifactBuilder("nut-cgi", client=client).build(BuildDescription(context=".", commit="abc1234"))

    def test_daemon_error(self):
        client = Mock()
        client.images.build.side_effect = APIError("daemon unreachable")

        with pytest.raises(BuildFailedError) as excinfo:
            DockerArtifactBuilder("nut-cgi", client=client).build(BuildDescription(context=".", commit="abc1234"))

        assert excinfo.value.commit == "abc1234"


class TestDockerTagPublisher:
    def _client(self, image, existing=None):
        """Client whose image store holds the candidate plus ``existing`` references."""
        images = {"nut-cgi:abc1234": image, **(existing or {})}

        def get(reference):
            if reference not in images:
                raise ImageNotFound(f"No such image: {reference}")
            return images[reference]

        client = Mock()
        client.images.get.side_effect = get
        return client

    def test_satisfies_protocol(self):
        assert isinstance(DockerTagPublisher(client=Mock()), TagPublisher)

    def test_apply_tags(self):
        image = Mock()
        image.tag.return_value = True
        client = self._client(image)

        DockerTagPublisher(client=client).apply_tags(ARTIFACT, ["latest", "1.2.3"])

        assert client.images.get.call_args_list[0].args == ("nut-cgi:abc1234",)
        assert [c.kwargs["tag"] for c in image.tag.call_args_list] == ["1.2.3", "latest"]
        client.images.push.assert_not_called()

    def test_push(self):
        image = Mock()
        image.tag.return_value = True
        client = self._client(image)
        client.images.push.return_value = iter([{"status": "Pushed"}])

        DockerTagPublisher(push=True, client=client).apply_tags(ARTIFACT, ["1.2.3"])

        client.images.push.assert_called_once_with("nut-cgi", tag="1.2.3", stream=True, decode=True)

    def test_refused_tag_rolls_back(self):
        image = Mock()
        image.tag.side_effect = [True, False]
        client = self._client(image)

        with pytest.raises(PromotionError) as excinfo:
            DockerTagPublisher(client=client).apply_tags(ARTIFACT, ["1.2.3", "latest"])

        assert excinfo.value.applied == ["1.2.3"]
        client.images.remove.assert_called_once_with("nut-cgi:1.2.3", noprune=True)

    def test_push_error_rolls_back_local_tags(self):
        image = Mock()
        image.tag.return_value = True
        client = self._client(image)
        client.images.push.return_value = iter([{"error": "denied: requested access to the resource is denied"}])

        with pytest.raises(PromotionError, match="denied"):
            DockerTagPublisher(push=True, client=client).apply_tags(ARTIFACT, ["1.2.3", "latest"])

        removed = sorted(c.args[0] for c in client.images.remove.call_args_list)
        assert removed == ["nut-cgi:1.2.3", "nut-cgi:latest"]

    def test_missing_image(self):
        client = Mock()
        client.images.get.side_effect = APIError("No such image")

        with pytest.raises(PromotionError) as excinfo:
            DockerTagPublisher(client=client).apply_tags(ARTIFACT, ["latest"])

        assert excinfo.value.applied == []
        client.images.remove.assert_not_called()

    def test_rollback_restores_floating_tags(self):
        """Tags that pointed at the previous release point back at it."""
        old = Mock(id="sha256:old")
        image = Mock(id="sha256:new")
        image.tag.side_effect = [True, True, True, False]
        client = self._client(image, {"nut-cgi:1": old, "nut-cgi:1.2": old, "sha256:old": old})

        with pytest.raises(PromotionError, match="refused tag 'latest'"):
            DockerTagPublisher(client=client).apply_tags(ARTIFACT, ["latest", "1.2.3", "1.2", "1"])

        assert [c.kwargs["tag"] for c in old.tag.call_args_list] == ["1", "1.2"]
        assert all(c.args == ("nut-cgi",) for c in old.tag.call_args_list)
        client.images.remove.assert_called_once_with("nut-cgi:1.2.3", noprune=True)
