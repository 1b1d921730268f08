"""Health check command (container HEALTHCHECK entry point)."""

import typer
from loguru import logger
from rich.console import Console

from nut_cgi_gate.health import HealthMode, TierEngine
from nut_cgi_gate.probes import build_engine_from_settings
from nut_cgi_gate.settings import get_settings

console = Console(highlight=False)


def run_health_check(engine: TierEngine, mode: HealthMode | str) -> int:
    """Evaluate once and print the single-line diagnostic.

    Returns:
        int: 0 when healthy, 1 otherwise
    """
    report = engine.evaluate(mode)
    console.print(report.summary_line(), markup=False, soft_wrap=True)
    return 0 if report.healthy else 1


def health(
    mode: str | None = typer.Option(
        None,
        "--mode",
        "-m",
        help="basic or strict; unrecognized values fall back to basic. Defaults to NUT_CGI_HEALTH_MODE.",
    ),
    url: str | None = typer.Option(
        None,
        "--url",
        help="Page to probe. Defaults to NUT_CGI_TARGET_URL.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        min=0.1,
        help="Timeout in seconds per probe step. Defaults to NUT_CGI_PROBE_TIMEOUT.",
    ),
):
    """Check whether nut-cgi is healthy; exit 0 if so, 1 otherwise.

    Tiers evaluated in basic mode: transport, execution,
    infrastructure-validity, headers. Strict mode adds domain-liveness,
    which also requires a reachable UPS reporting data.

    Examples:
        nut-cgi-gate health
        nut-cgi-gate health --mode strict
    """
    settings = get_settings()
    selected = settings.health_mode
    if mode is not None:
        selected = HealthMode.parse(mode)
        if mode.strip().lower() != selected:
            logger.warning(f"Unrecognized health mode '{mode}', falling back to '{selected}'")

    overrides = {"target_url": url, "probe_timeout": timeout}
    engine = build_engine_from_settings(
        settings.model_copy(update={key: value for key, value in overrides.items() if value is not None})
    )
    raise typer.Exit(run_health_check(engine, selected))
