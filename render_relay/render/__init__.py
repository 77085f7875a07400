"""Render API access and resource models."""

from .client import RenderClient
from .models import (
    Deploy,
    Event,
    FailureReason,
    NonZeroExit,
    OomKilled,
    Service,
    TimedOut,
    Unhealthy,
    Unknown,
    decode_failure_reason,
)

__all__ = [
    "RenderClient",
    "Deploy",
    "Event",
    "FailureReason",
    "NonZeroExit",
    "OomKilled",
    "Service",
    "TimedOut",
    "Unhealthy",
    "Unknown",
    "decode_failure_reason",
]
