"""Application configuration using Pydantic Settings.

This module centralizes runtime configuration for the health check and the
release gate. Values can be provided via environment variables (preferred)
or fall back to the defaults below. A ``Settings`` instance is intended to be
retrieved via ``get_settings`` which caches the object for reuse across the
process.

Environment variable prefix: ``NUT_CGI_`` (e.g. ``NUT_CGI_HEALTH_MODE``).
"""

from functools import lru_cache
from typing import Literal

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nut_cgi_gate.constants import DEFAULT_IMAGE_REPOSITORY, DEFAULT_TARGET_URL
from nut_cgi_gate.health.enums import HealthMode
from nut_cgi_gate.release.tags import TagPolicy


class Settings(BaseSettings):
    """Runtime settings.

    Attributes map directly to environment variables using the ``NUT_CGI_``
    prefix (case-insensitive). For example, ``health_mode`` <- ``NUT_CGI_HEALTH_MODE``.
    """

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level",
    )

    # Health check settings
    health_mode: HealthMode = Field(
        default=HealthMode.BASIC,
        description="Health check strictness: basic or strict. Unrecognized values fall back to basic.",
    )
    target_url: str = Field(
        default=DEFAULT_TARGET_URL,
        description="URL of the CGI page probed by the health check",
    )  # fmt: skip
    probe_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for each probe step",
    )  # fmt: skip
    accepted_content_types: list[str] = Field(
        default_factory=lambda: ["text/html"],
        description="Media types accepted in the Content-Type header of the probed page",
    )

    # Release gate settings
    image_repository: str = Field(
        default=DEFAULT_IMAGE_REPOSITORY,
        description="Repository the candidate image is built into and promoted within",
    )  # fmt: skip
    release_budget: float = Field(
        default=1800.0,
        gt=0,
        description="Wall-clock budget in seconds for all verification jobs of one release attempt",
    )
    job_timeout: float = Field(
        default=600.0,
        gt=0,
        description="Default timeout in seconds for each verification job",
    )
    selftest_start_period: float = Field(
        default=15.0,
        ge=0,
        description="Grace period in seconds before the container self-test starts probing",
    )
    selftest_interval: float = Field(
        default=5.0,
        ge=0,
        description="Seconds between container self-test probe attempts",
    )
    selftest_retries: int = Field(
        default=3,
        ge=1,
        description="Probe attempts before the container self-test gives up",
    )
    push_tags: bool = Field(
        default=False,
        description="Push promoted tags to the registry after tagging",
    )  # fmt: skip
    tag_policy: TagPolicy = Field(
        default_factory=TagPolicy,
        description="Trigger -> tag set mapping, as JSON in NUT_CGI_TAG_POLICY or per NUT_CGI_TAG_POLICY__<FIELD>",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    @field_validator("health_mode", mode="before")
    @classmethod
    def validate_health_mode(cls, v: str | None) -> HealthMode:
        """Fall back to ``basic`` instead of failing on unrecognized modes."""
        mode = HealthMode.parse(v)
        if v is not None and str(v).strip().lower() != mode:
            logger.warning(f"Unrecognized health mode '{v}', falling back to '{mode}'")
        return mode

    model_config = SettingsConfigDict(
        env_prefix="NUT_CGI_",  # Prefix for env vars
        case_sensitive=False,
        extra="ignore",  # Ignore unexpected env vars
        env_file=".env",  # Optional .env loading (if present)
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # NUT_CGI_TAG_POLICY__BRANCH_TAGS etc.
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
