"""Release command: build, verify, promote."""

import shlex
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from nut_cgi_gate.exceptions import TagPolicyError
from nut_cgi_gate.health import HealthMode
from nut_cgi_gate.probes import build_engine_from_settings
from nut_cgi_gate.release import (
    BuildDescription,
    ReleaseCoordinator,
    ReleaseOutcome,
    ReleaseStatus,
    ReleaseTrigger,
    VerificationJob,
)
from nut_cgi_gate.release.docker_adapters import DockerArtifactBuilder, DockerTagPublisher
from nut_cgi_gate.release.jobs import CommandJob, ContainerSelfTestJob, VulnerabilityScanJob
from nut_cgi_gate.settings import Settings, get_settings

console = Console()

EXIT_PROMOTED = 0
EXIT_QUARANTINED = 1
EXIT_BUILD_FAILED = 2


def build_jobs(
    settings: Settings,
    mode: HealthMode,
    user: str | None,
    test_command: str | None,
    scan: bool,
) -> list[VerificationJob]:
    """Assemble the verification jobs of one release attempt."""
    jobs: list[VerificationJob] = [
        ContainerSelfTestJob(
            mode=mode,
            timeout=settings.job_timeout,
            start_period=settings.selftest_start_period,
            interval=settings.selftest_interval,
            retries=settings.selftest_retries,
            user=user,
            engine_factory=lambda url: build_engine_from_settings(settings.model_copy(update={"target_url": url})),
        )
    ]
    if test_command:
        jobs.append(CommandJob("functional-tests", shlex.split(test_command), timeout=settings.job_timeout))
    if scan:
        jobs.append(VulnerabilityScanJob(timeout=settings.job_timeout))
    return jobs


def render_outcome(outcome: ReleaseOutcome) -> None:
    """Print every job result and the promotion decision."""
    table = Table(title=f"Release {outcome.artifact_id or '(no artifact)'} [{outcome.trigger}]")
    table.add_column("Job")
    table.add_column("Result")
    table.add_column("Time", justify="right")
    table.add_column("Report", overflow="fold")
    for result in outcome.job_results:
        verdict = "[green]pass[/green]" if result.passed else "[red]timeout[/red]" if result.timed_out else "[red]fail[/red]"
        elapsed = f"{result.execution_time_ms / 1000:.1f}s" if result.execution_time_ms is not None else "-"
        report = result.report.splitlines()[-1] if result.report else ""
        table.add_row(result.job_name, verdict, elapsed, report)
        for finding in result.findings[:10]:
            table.add_row("", "", "", f"[dim]{finding}[/dim]")
    if outcome.job_results:
        console.print(table)

    if outcome.status == ReleaseStatus.PROMOTED:
        console.print(f"[green]{outcome.message}[/green]")
        for reference in outcome.references:
            console.print(f"  {reference}")
    else:
        console.print(f"[red]{outcome.message}[/red]")


def release(
    commit: str = typer.Option(..., "--commit", help="Commit SHA; becomes the provisional image tag"),
    ref: str = typer.Option(..., "--ref", help="Git ref that triggered the release, e.g. refs/tags/v1.2.3"),
    context: Path = typer.Option(Path("."), "--context", help="Docker build context"),
    dockerfile: str = typer.Option("Dockerfile", "--dockerfile", help="Dockerfile path inside the context"),
    repository: str | None = typer.Option(None, "--repository", help="Image repository. Defaults to NUT_CGI_IMAGE_REPOSITORY."),
    mode: str = typer.Option("basic", "--mode", help="Health mode for the container self-test"),
    user: str | None = typer.Option(None, "--user", help="Run the self-test container as this UID[:GID]"),
    test_command: str | None = typer.Option(
        None, "--test-command", help="Functional test command; {image} is replaced by the candidate reference"
    ),
    scan: bool = typer.Option(True, "--scan/--no-scan", help="Run the Trivy vulnerability scan"),
    push: bool = typer.Option(False, "--push", help="Push promoted tags; also enabled by NUT_CGI_PUSH_TAGS"),
):
    """Build a candidate image, verify it, and promote it only if every job passes.

    Exit codes: 0 promoted, 1 quarantined, 2 build failed.

    Examples:
        nut-cgi-gate release --commit $GITHUB_SHA --ref $GITHUB_REF
        nut-cgi-gate release --commit abc123 --ref refs/heads/main --no-scan --user 1234:1234
    """
    settings = get_settings()
    if not context.exists():
        console.print(f"[red]Error: build context does not exist: {context}[/red]")
        raise typer.Exit(EXIT_BUILD_FAILED)

    try:
        trigger = ReleaseTrigger.from_ref(ref)
    except TagPolicyError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(EXIT_BUILD_FAILED) from None

    coordinator = ReleaseCoordinator(
        builder=DockerArtifactBuilder(repository or settings.image_repository),
        jobs=build_jobs(settings, HealthMode.parse(mode), user, test_command, scan),
        publisher=DockerTagPublisher(push=push or settings.push_tags),
        tag_policy=settings.tag_policy,
        budget=settings.release_budget,
    )
    console.print(f"[bold]Releasing {commit} ({trigger}) with jobs: {', '.join(coordinator.get_job_names())}[/bold]\n")

    outcome = coordinator.release(
        BuildDescription(context=str(context), commit=commit, dockerfile=dockerfile),
        trigger,
    )
    render_outcome(outcome)

    if outcome.status == ReleaseStatus.PROMOTED:
        raise typer.Exit(EXIT_PROMOTED)
    if outcome.status == ReleaseStatus.BUILD_FAILED:
        raise typer.Exit(EXIT_BUILD_FAILED)
    raise typer.Exit(EXIT_QUARANTINED)
