"""Declarative tier layout of the nut-cgi health check.

Tiers are data: add, remove or reorder entries of ``DEFAULT_TIER_LAYOUT`` to
change what the health check covers.
"""

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from nut_cgi_gate.constants import (
    TIER_DOMAIN_LIVENESS,
    TIER_EXECUTION,
    TIER_HEADERS,
    TIER_INFRASTRUCTURE,
    TIER_TRANSPORT,
)
from nut_cgi_gate.health import ALL_MODES, HealthMode, ProbeStep, TierEngine, TierEngineBuilder
from nut_cgi_gate.settings import Settings

from .classifier import BodyClassifier, MarkerClassifier
from .client import ServiceClient
from .steps import DomainLivenessStep, ExecutionStep, HeadersStep, InfrastructureValidityStep, TransportStep


@dataclass(frozen=True)
class ProbeContext:
    """Everything a step factory needs to construct its step."""

    client: ServiceClient
    classifier: BodyClassifier
    timeout: float
    accepted_content_types: tuple[str, ...]


@dataclass(frozen=True)
class TierSpec:
    """One declared tier: name, description, modes and step factories."""

    name: str
    description: str
    modes: frozenset[HealthMode]
    step_factories: tuple[Callable[[ProbeContext], ProbeStep], ...]


DEFAULT_TIER_LAYOUT: tuple[TierSpec, ...] = (
    TierSpec(
        TIER_TRANSPORT,
        "Web server responds with a 2xx status",
        ALL_MODES,
        (lambda ctx: TransportStep(ctx.client, ctx.timeout),),
    ),
    TierSpec(
        TIER_EXECUTION,
        "CGI program executes and returns a body",
        ALL_MODES,
        (lambda ctx: ExecutionStep(ctx.client, ctx.timeout),),
    ),
    TierSpec(
        TIER_INFRASTRUCTURE,
        "Body carries no template or server error markers",
        ALL_MODES,
        (lambda ctx: InfrastructureValidityStep(ctx.client, ctx.classifier, ctx.timeout),),
    ),
    TierSpec(
        TIER_HEADERS,
        "Response declares an accepted Content-Type",
        ALL_MODES,
        (lambda ctx: HeadersStep(ctx.client, ctx.accepted_content_types, ctx.timeout),),
    ),
    TierSpec(
        TIER_DOMAIN_LIVENESS,
        "Monitored UPS is reachable and reporting data",
        frozenset({HealthMode.STRICT}),
        (lambda ctx: DomainLivenessStep(ctx.client, ctx.classifier, ctx.timeout),),
    ),
)


def build_health_engine(
    url: str,
    timeout: float = 10.0,
    accepted_content_types: tuple[str, ...] = ("text/html",),
    classifier: BodyClassifier | None = None,
    transport: httpx.BaseTransport | None = None,
    layout: tuple[TierSpec, ...] = DEFAULT_TIER_LAYOUT,
) -> TierEngine:
    """Build a tier engine probing ``url``.

    Args:
        url: Page to probe
        timeout: Timeout of each probe step in seconds
        accepted_content_types: Media types the headers tier accepts
        classifier: Body classifier; defaults to keyword markers
        transport: Optional httpx transport (tests inject a mock)
        layout: Tier declarations, in evaluation order

    Returns:
        Configured TierEngine
    """
    context = ProbeContext(
        client=ServiceClient(url, transport=transport),
        classifier=classifier or MarkerClassifier(),
        timeout=timeout,
        accepted_content_types=tuple(accepted_content_types),
    )

    builder = TierEngineBuilder()
    for spec in layout:
        builder.tier(spec.name, spec.description, spec.modes)
        builder.steps(factory(context) for factory in spec.step_factories)
    return builder.build()


def build_engine_from_settings(settings: Settings) -> TierEngine:
    """Build the health engine described by ``settings``."""
    return build_health_engine(
        settings.target_url,
        timeout=settings.probe_timeout,
        accepted_content_types=tuple(settings.accepted_content_types),
    )


__all__ = [
    "DEFAULT_TIER_LAYOUT",
    "ProbeContext",
    "TierSpec",
    "build_engine_from_settings",
    "build_health_engine",
]
