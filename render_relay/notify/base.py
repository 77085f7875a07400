"""Abstract notifier base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from render_relay.notify.message import FailureNotification


class Notifier(ABC):
    @property
    @abstractmethod
    def platform_name(self) -> str: ...

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def send(self, notification: FailureNotification) -> None: ...
