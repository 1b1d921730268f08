"""HTTP probe steps and the default tier layout for the nut-cgi page."""

from .classifier import BodyClass, BodyClassifier, MarkerClassifier
from .client import ServiceClient, ServiceResponse
from .steps import (
    DomainLivenessStep,
    ExecutionStep,
    HeadersStep,
    HttpProbeStep,
    InfrastructureValidityStep,
    TransportStep,
)
from .tier_layout import (
    DEFAULT_TIER_LAYOUT,
    TierSpec,
    build_engine_from_settings,
    build_health_engine,
)

__all__ = [
    "BodyClass",
    "BodyClassifier",
    "MarkerClassifier",
    "ServiceClient",
    "ServiceResponse",
    "HttpProbeStep",
    "TransportStep",
    "ExecutionStep",
    "InfrastructureValidityStep",
    "HeadersStep",
    "DomainLivenessStep",
    "DEFAULT_TIER_LAYOUT",
    "TierSpec",
    "build_health_engine",
    "build_engine_from_settings",
]
