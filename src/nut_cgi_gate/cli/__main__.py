"""CLI entry point.

Usage:
    python -m nut_cgi_gate.cli health --mode strict
    nut-cgi-gate health
    nut-cgi-gate release --commit <sha> --ref refs/tags/v1.2.3
"""

from loguru import logger

import nut_cgi_gate
from nut_cgi_gate.cli.app import app
from nut_cgi_gate.logging import setup_logging
from nut_cgi_gate.settings import get_settings


def main() -> None:
    """CLI entry point with logging configuration."""
    setup_logging(get_settings().log_level, compact=True)
    logger.enable(nut_cgi_gate.__name__)
    app()


if __name__ == "__main__":
    main()
