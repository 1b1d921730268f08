"""Main CLI application."""

import typer

from nut_cgi_gate.cli.commands.health import health
from nut_cgi_gate.cli.commands.release import release

app = typer.Typer(
    name="nut-cgi-gate",
    help="nut-cgi health checks and release gating",
    no_args_is_help=True,
)

app.command()(health)
app.command()(release)
