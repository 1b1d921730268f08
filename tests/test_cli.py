"""Tests for the nut-cgi-gate command line."""

from unittest.mock import patch

import httpx
from typer.testing import CliRunner

from nut_cgi_gate.cli import app
from nut_cgi_gate.cli.commands.health import run_health_check
from nut_cgi_gate.cli.commands.release import EXIT_BUILD_FAILED, EXIT_PROMOTED, EXIT_QUARANTINED, build_jobs
from nut_cgi_gate.exceptions import BuildFailedError
from nut_cgi_gate.health import HealthMode
from nut_cgi_gate.probes import build_health_engine
from nut_cgi_gate.release import Artifact, VerificationJob, VerificationResult
from nut_cgi_gate.settings import Settings

runner = CliRunner()

UPS_PAGE = "<html><body><p>UPS Model: Smart-UPS 750</p><p>Status: On line</p></body></html>"


def _mock_engine(**response_kwargs):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, **response_kwargs))
    return build_health_engine("http://localhost/upsstats.cgi", timeout=1.0, transport=transport)


class TestHealthCommand:
    def test_run_health_check_healthy(self, capsys):
        code = run_health_check(_mock_engine(html=UPS_PAGE), HealthMode.STRICT)

        assert code == 0
        assert capsys.readouterr().out.strip() == "OK: nut-cgi healthy (strict)"

    def test_run_health_check_unhealthy(self, capsys):
        code = run_health_check(_mock_engine(html="<p>Error: No UPS found</p>"), "strict")

        assert code == 1
        line = capsys.readouterr().out.strip()
        assert line.startswith("ERROR: UPS unavailable")
        assert line.endswith("[tier: domain-liveness]")

    def test_health_exit_codes(self):
        with patch("nut_cgi_gate.cli.commands.health.build_engine_from_settings") as mock_build:
            mock_build.return_value = _mock_engine(html="")
            result = runner.invoke(app, ["health", "--mode", "basic"])

        assert result.exit_code == 1
        assert "ERROR: nut-cgi not executing" in result.output

    def test_health_options_passed_to_engine(self):
        with patch("nut_cgi_gate.cli.commands.health.build_engine_from_settings") as mock_build:
            mock_build.return_value = _mock_engine(html=UPS_PAGE)
            result = runner.invoke(app, ["health", "-m", "bogus", "--url", "http://ups.local/x.cgi", "--timeout", "3"])

        assert result.exit_code == 0
        assert "OK: nut-cgi healthy (basic)" in result.output
        settings = mock_build.call_args.args[0]
        assert settings.target_url == "http://ups.local/x.cgi"
        assert settings.probe_timeout == 3.0


class PassingJob(VerificationJob):
    def _execute(self, artifact: Artifact) -> VerificationResult:
        return self.passed("ok")


class FailingJob(VerificationJob):
    def _execute(self, artifact: Artifact) -> VerificationResult:
        return self.failed("2 vulnerabilities found", findings=["CVE-2024-2511 libssl3 HIGH"])


class FakeBuilder:
    def __init__(self, fail: bool = False):
        self.fail = fail

    def build(self, description):
        if self.fail:
            raise BuildFailedError(description.commit, "no Dockerfile")
        return Artifact(id=description.commit, repository="nut-cgi", provisional_tags={description.commit})


class FakePublisher:
    def __init__(self):
        self.applied = []

    def apply_tags(self, artifact, tags):
        self.applied.extend(tags)


class TestReleaseCommand:
    def _invoke(self, tmp_path, jobs, builder=None, ref="refs/tags/v1.2.3", settings=None):
        publisher = FakePublisher()
        with (
            patch("nut_cgi_gate.cli.commands.release.get_settings", return_value=settings or Settings(_env_file=None)),
            patch("nut_cgi_gate.cli.commands.release.DockerArtifactBuilder", return_value=builder or FakeBuilder()),
            patch("nut_cgi_gate.cli.commands.release.DockerTagPublisher", return_value=publisher),
            patch("nut_cgi_gate.cli.commands.release.build_jobs", return_value=jobs),
        ):
            result = runner.invoke(app, ["release", "--commit", "abc1234", "--ref", ref, "--context", str(tmp_path)])
        return result, publisher

    def test_promoted(self, tmp_path):
        result, publisher = self._invoke(tmp_path, [PassingJob("self-test")])

        assert result.exit_code == EXIT_PROMOTED
        assert "Promoted nut-cgi:abc1234" in result.output
        assert "nut-cgi:latest" in result.output
        assert sorted(publisher.applied) == ["1", "1.2", "1.2.3", "latest"]

    def test_configured_tag_policy(self, tmp_path):
        settings = Settings(_env_file=None, tag_policy={"branch_tags": {"develop": ["edge"]}})

        jobs = [PassingJob("self-test")]
        result, publisher = self._invoke(tmp_path, jobs, ref="refs/heads/develop", settings=settings)

        assert result.exit_code == EXIT_PROMOTED
        assert publisher.applied == ["edge"]

    def test_quarantined(self, tmp_path):
        result, publisher = self._invoke(tmp_path, [PassingJob("self-test"), FailingJob("vulnerability-scan")])

        assert result.exit_code == EXIT_QUARANTINED
        assert "quarantined" in result.output
        assert "CVE-2024-2511" in result.output
        assert publisher.applied == []

    def test_build_failed(self, tmp_path):
        result, _ = self._invoke(tmp_path, [PassingJob("self-test")], builder=FakeBuilder(fail=True))

        assert result.exit_code == EXIT_BUILD_FAILED
        assert "Build failed" in result.output

    def test_invalid_ref(self, tmp_path):
        result, _ = self._invoke(tmp_path, [], ref="refs/pull/1/merge")

        assert result.exit_code == EXIT_BUILD_FAILED
        assert "Invalid release trigger" in result.output

    def test_missing_context(self, tmp_path):
        result, _ = self._invoke(tmp_path / "missing", [])

        assert result.exit_code == EXIT_BUILD_FAILED
        assert "build context does not exist" in result.output


class TestBuildJobs:
    def test_default_jobs(self):
        jobs = build_jobs(Settings(_env_file=None), HealthMode.STRICT, user="1234", test_command=None, scan=True)

        assert [job.name for job in jobs] == ["container-self-test", "vulnerability-scan"]
        assert jobs[0].mode == HealthMode.STRICT
        assert jobs[0].user == "1234"

    def test_functional_tests_and_no_scan(self):
        jobs = build_jobs(
            Settings(_env_file=None), HealthMode.BASIC, user=None, test_command="pytest -k 'smoke' --image {image}", scan=False
        )

        assert [job.name for job in jobs] == ["container-self-test", "functional-tests"]
        assert jobs[1].command == ("pytest", "-k", "smoke", "--image", "{image}")

    def test_self_test_engine_follows_settings(self):
        settings = Settings(_env_file=None, probe_timeout=2.5, accepted_content_types=["application/xhtml+xml"])
        jobs = build_jobs(settings, HealthMode.STRICT, user=None, test_command=None, scan=False)

        engine = jobs[0].engine_factory("http://127.0.0.1:32768/upsstats.cgi")

        transport_step = engine.get_tier("transport").steps[0]
        headers_step = engine.get_tier("headers").steps[0]
        assert transport_step.timeout == 2.5
        assert transport_step.client.url == "http://127.0.0.1:32768/upsstats.cgi"
        assert headers_step.accepted_content_types == ("application/xhtml+xml",)
