"""Render API resource models and the decoded failure reason."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Failure reasons
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NonZeroExit:
    code: int

    def describe(self) -> str:
        return f"Exited with status {self.code}"


@dataclass(frozen=True)
class OomKilled:
    def describe(self) -> str:
        return "Out of Memory"


@dataclass(frozen=True)
class TimedOut:
    seconds: int | None = None
    reason: str = ""

    def describe(self) -> str:
        return f"Timed out {self.reason}" if self.reason else "Timed out"


@dataclass(frozen=True)
class Unhealthy:
    message: str

    def describe(self) -> str:
        return self.message


@dataclass(frozen=True)
class Unknown:
    def describe(self) -> str:
        return "Failed for unknown reason"


FailureReason = NonZeroExit | OomKilled | TimedOut | Unhealthy | Unknown


def decode_failure_reason(details: dict[str, Any]) -> FailureReason:
    """Pick the failure subtype from an event's details.

    Render populates at most one of these keys; when several appear the
    first in this order wins.
    """
    if details.get("nonZeroExit"):
        return NonZeroExit(code=details["nonZeroExit"])
    if details.get("oomKilled"):
        return OomKilled()
    if details.get("timedOutSeconds"):
        return TimedOut(
            seconds=details["timedOutSeconds"],
            reason=str(details.get("timedOutReason") or ""),
        )
    if details.get("unhealthy"):
        return Unhealthy(message=str(details["unhealthy"]))
    return Unknown()


# ---------------------------------------------------------------------------
# API resources
# ---------------------------------------------------------------------------

@dataclass
class Service:
    id: str
    name: str
    branch: str | None = None
    repo: str | None = None
    dashboard_url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Service:
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            branch=data.get("branch"),
            repo=data.get("repo"),
            dashboard_url=data.get("dashboardUrl"),
        )

    @property
    def logs_url(self) -> str | None:
        if not self.dashboard_url:
            return None
        return f"{self.dashboard_url.rstrip('/')}/logs"


@dataclass
class Event:
    id: str
    type: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Event:
        return cls(
            id=data.get("id", ""),
            type=data.get("type", ""),
            details=data.get("details") or {},
        )

    @property
    def deploy_id(self) -> str | None:
        return self.details.get("deployId")

    @property
    def failure_reason(self) -> FailureReason:
        return decode_failure_reason(self.details)


@dataclass
class Deploy:
    id: str
    commit: dict[str, Any] | str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Deploy:
        return cls(id=data.get("id", ""), commit=data.get("commit"))

    @property
    def is_git_backed(self) -> bool:
        # Image-backed deploys carry an image reference instead of a commit
        return bool(self.commit)
