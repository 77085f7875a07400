"""Chat-agnostic notification content."""

from __future__ import annotations

from dataclasses import dataclass

from render_relay.render.models import Event, Service


@dataclass
class FailureNotification:
    title: str
    description: str
    service_name: str
    logs_url: str | None = None
    branch: str | None = None
    repo: str | None = None
    event_id: str | None = None


def build_failure_notification(service: Service, event: Event) -> FailureNotification:
    return FailureNotification(
        title=f"{service.name} Failed",
        description=event.failure_reason.describe(),
        service_name=service.name,
        logs_url=service.logs_url,
        branch=service.branch,
        repo=service.repo,
        event_id=event.id,
    )
