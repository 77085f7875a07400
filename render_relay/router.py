"""Routes verified webhook payloads to their handlers in background tasks."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine

from render_relay.notify.base import Notifier
from render_relay.notify.message import build_failure_notification
from render_relay.render.client import RenderClient
from render_relay.utils.logging import bind_webhook, get_logger
from render_relay.webhooks.models import WebhookPayload

log = get_logger(__name__)

Handler = Callable[[WebhookPayload], Coroutine[Any, Any, None]]
ErrorSink = Callable[[WebhookPayload, BaseException], None]

SERVER_FAILED = "server_failed"


def log_failure(payload: WebhookPayload, exc: BaseException) -> None:
    log.error(
        "webhook_failed",
        webhook_type=payload.type,
        event_id=payload.data.id,
        service_id=payload.data.service_id,
        exc_info=exc,
    )


class EventRouter:
    """Dispatches each payload to the handler registered for its type.

    Failures inside a dispatched chain go to ``on_error`` and nowhere else:
    the webhook sender has already been answered, and nothing is retried.
    """

    def __init__(
        self,
        render: RenderClient,
        notifier: Notifier,
        *,
        require_git_deploy: bool = False,
        on_error: ErrorSink | None = None,
    ) -> None:
        self._render = render
        self._notifier = notifier
        self._require_git_deploy = require_git_deploy
        self._on_error = on_error or log_failure
        self._tasks: set[asyncio.Task[None]] = set()
        self._handlers: dict[str, Handler] = {
            SERVER_FAILED: self._handle_server_failed,
        }

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def dispatch(self, payload: WebhookPayload) -> asyncio.Task[None]:
        """Start handling ``payload`` without waiting for it."""
        task = asyncio.create_task(
            self._run(payload),
            name=f"webhook-{payload.type}-{payload.data.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, payload: WebhookPayload) -> None:
        with bind_webhook(
            webhook_type=payload.type,
            event_id=payload.data.id,
            service_id=payload.data.service_id,
        ):
            try:
                await self.handle(payload)
            except Exception as e:
                self._on_error(payload, e)

    async def handle(self, payload: WebhookPayload) -> None:
        handler = self._handlers.get(payload.type)
        if handler is None:
            log.info(
                "webhook_unhandled",
                webhook_type=payload.type,
                service_id=payload.data.service_id,
            )
            return
        await handler(payload)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_server_failed(self, payload: WebhookPayload) -> None:
        service_id = payload.data.service_id
        event = await self._render.get_event(payload.data.id)

        if self._require_git_deploy and event.deploy_id:
            deploy = await self._render.get_deploy(service_id, event.deploy_id)
            if not deploy.is_git_backed:
                log.info(
                    "notification_suppressed",
                    reason="image_backed_deploy",
                    service_id=service_id,
                    deploy_id=event.deploy_id,
                )
                return

        service = await self._render.get_service(service_id)
        notification = build_failure_notification(service, event)
        log.info(
            "sending_notification",
            platform=self._notifier.platform_name,
            service=service.name,
            description=notification.description,
        )
        await self._notifier.send(notification)
