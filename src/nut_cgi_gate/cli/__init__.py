"""CLI module for nut-cgi-gate.

Provides the health check used as the container HEALTHCHECK and the
build-verify-promote release command.
"""

from nut_cgi_gate.cli.app import app

__all__ = ["app"]
