"""Chat notifiers."""

from .base import Notifier
from .discord_notifier import DiscordNotifier
from .message import FailureNotification, build_failure_notification

__all__ = [
    "Notifier",
    "DiscordNotifier",
    "FailureNotification",
    "build_failure_notification",
]
