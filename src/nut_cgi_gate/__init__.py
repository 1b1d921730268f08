"""Tiered health checks and build-test-promote release gating for the nut-cgi container."""

from .settings import Settings, get_settings  # noqa: F401

__all__ = ["get_settings", "Settings"]
