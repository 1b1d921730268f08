"""Verification jobs run against a candidate image."""

import json
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence

import docker
from docker.errors import DockerException
from loguru import logger
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from nut_cgi_gate.constants import CONTAINER_HTTP_PORT
from nut_cgi_gate.health import FailureKind, HealthMode, HealthReport, TierEngine
from nut_cgi_gate.probes import build_health_engine

from .base import DEFAULT_JOB_TIMEOUT, VerificationJob
from .models import Artifact, VerificationResult

_REPORT_TAIL_LINES = 20

EngineFactory = Callable[[str], TierEngine]


def _tail(text: str, lines: int = _REPORT_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class CommandJob(VerificationJob):
    """Runs an external command; exit status 0 passes.

    Each argument may contain ``{image}``, replaced by the artifact reference,
    and ``{artifact_id}``, replaced by the commit SHA.
    """

    def __init__(
        self,
        name: str,
        command: Sequence[str],
        timeout: float = DEFAULT_JOB_TIMEOUT,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ):
        super().__init__(name, timeout)
        if not command:
            raise ValueError(f"Job '{name}' needs a command")
        self.command = tuple(command)
        self.cwd = cwd
        self.env = dict(env) if env is not None else None

    def render_command(self, artifact: Artifact) -> list[str]:
        return [arg.format(image=artifact.reference, artifact_id=artifact.id) for arg in self.command]

    def _execute(self, artifact: Artifact) -> VerificationResult:
        args = self.render_command(artifact)
        logger.debug(f"Job {self.name} running: {' '.join(args)}")
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=self.cwd,
                env=self.env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            result = self.failed(f"Command timed out after {self.timeout:g}s", details={"command": args})
            result.timed_out = True
            result.failure = FailureKind.TIMEOUT
            logger.warning(f"Job {self.name}: {e}")
            return result
        except OSError as e:
            return self.failed(f"Command could not start: {e}", details={"command": args})

        return self.interpret(completed)

    def interpret(self, completed: subprocess.CompletedProcess) -> VerificationResult:
        """Turn the finished process into a result."""
        output = _tail(completed.stdout + completed.stderr)
        details = {"returncode": completed.returncode}
        if completed.returncode == 0:
            return self.passed(output or "Command succeeded", details=details)
        return self.failed(output or f"Command exited with status {completed.returncode}", details=details)


class VulnerabilityScanJob(CommandJob):
    """Scans the image with Trivy; HIGH or CRITICAL findings fail the job."""

    def __init__(
        self,
        name: str = "vulnerability-scan",
        severities: Sequence[str] = ("CRITICAL", "HIGH"),
        timeout: float = DEFAULT_JOB_TIMEOUT,
        scanner: str = "trivy",
    ):
        command = [
            scanner,
            "image",
            "--quiet",
            "--format",
            "json",
            "--exit-code",
            "1",
            "--severity",
            ",".join(severities),
            "{image}",
        ]
        super().__init__(name, command, timeout)
        self.severities = tuple(severities)

    def interpret(self, completed: subprocess.CompletedProcess) -> VerificationResult:
        findings = self.parse_findings(completed.stdout)
        details = {"returncode": completed.returncode, "severities": list(self.severities)}
        if completed.returncode == 0:
            return self.passed(f"No {'/'.join(self.severities)} vulnerabilities found", findings, details)
        if findings:
            return self.failed(f"{len(findings)} vulnerabilities found", findings, details)
        return self.failed(_tail(completed.stderr) or f"Scanner exited with status {completed.returncode}", details=details)

    @staticmethod
    def parse_findings(report: str) -> list[str]:
        """Extract ``<id> <package> <severity>`` lines from a Trivy JSON report."""
        try:
            document = json.loads(report) if report.strip() else {}
        except json.JSONDecodeError:
            return []
        findings = []
        for target in document.get("Results") or []:
            for vulnerability in target.get("Vulnerabilities") or []:
                findings.append(
                    f"{vulnerability.get('VulnerabilityID', '?')} "
                    f"{vulnerability.get('PkgName', '?')} "
                    f"{vulnerability.get('Severity', '?')}"
                )
        return sorted(findings)


class ContainerSelfTestJob(VerificationJob):
    """Starts the image and runs the health check against it.

    Mirrors the image's own health-check policy: wait out a start period,
    then probe up to ``retries`` times ``interval`` seconds apart. The
    container runs as ``user`` when given, since the image must work under
    an arbitrary UID.
    """

    def __init__(
        self,
        name: str = "container-self-test",
        mode: HealthMode = HealthMode.BASIC,
        timeout: float = DEFAULT_JOB_TIMEOUT,
        start_period: float = 15.0,
        interval: float = 5.0,
        retries: int = 3,
        user: str | None = None,
        path: str = "/upsstats.cgi",
        client: docker.DockerClient | None = None,
        engine_factory: EngineFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(name, timeout)
        self.mode = HealthMode.parse(mode)
        self.start_period = start_period
        self.interval = interval
        self.retries = retries
        self.user = user
        self.path = path
        self._client = client
        self.engine_factory = engine_factory or (lambda url: build_health_engine(url))
        self._sleep = sleep

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def _execute(self, artifact: Artifact) -> VerificationResult:
        try:
            container = self.client.containers.run(
                artifact.reference,
                detach=True,
                ports={f"{CONTAINER_HTTP_PORT}/tcp": None},
                user=self.user,
            )
        except DockerException as e:
            return self.failed(f"Container could not start: {e}")

        try:
            container.reload()
            bindings = container.ports.get(f"{CONTAINER_HTTP_PORT}/tcp") or []
            if not bindings:
                return self.failed(f"Container published no binding for port {CONTAINER_HTTP_PORT}")
            url = f"http://127.0.0.1:{bindings[0]['HostPort']}{self.path}"
            logger.info(f"Job {self.name} probing {url} in {self.mode} mode")

            self._sleep(self.start_period)
            report = self._probe(self.engine_factory(url))
            details = {"url": url, "mode": str(self.mode), "user": self.user, "tiers": _tier_summary(report)}
            if report.healthy:
                return self.passed(report.summary_line(), details=details)
            return self.failed(report.summary_line(), findings=_log_tail(container), details=details)
        finally:
            try:
                container.remove(force=True)
            except DockerException as e:
                logger.error(f"Could not remove self-test container {container.id}: {e}")

    def _probe(self, engine: TierEngine) -> HealthReport:
        retrying = Retrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_fixed(self.interval),
            retry=retry_if_result(lambda report: not report.healthy),
            sleep=self._sleep,
            reraise=False,
        )
        try:
            return retrying(engine.evaluate, self.mode)
        except RetryError as e:
            return e.last_attempt.result()


def _tier_summary(report: HealthReport) -> dict[str, str]:
    return {tier.tier_name: str(tier.status) for tier in report.tier_results}


def _log_tail(container) -> list[str]:
    try:
        logs = container.logs(tail=_REPORT_TAIL_LINES).decode("utf-8", errors="replace")
    except DockerException as e:
        return [f"container logs unavailable: {e}"]
    return logs.strip().splitlines()
