"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

import json
from typing import Awaitable, Callable

from aiohttp import web

from render_relay.config import ServerConfig
from render_relay.errors import VerificationError
from render_relay.router import EventRouter
from render_relay.utils.logging import bind_webhook, get_logger
from render_relay.webhooks.models import WebhookPayload
from render_relay.webhooks.verify import WebhookVerifier

log = get_logger(__name__)

_RequestHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(
    request: web.Request, handler: _RequestHandler
) -> web.StreamResponse:
    """Map failures before acknowledgment onto empty JSON error responses."""
    with bind_webhook(webhook_id=request.headers.get("webhook-id")):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except VerificationError as e:
            log.warning("webhook_rejected", path=request.path, reason=str(e))
            return web.json_response({}, status=400)
        except Exception:
            log.exception("webhook_request_error", path=request.path)
            return web.json_response({}, status=500)


class WebhookServer:
    """Receives Render webhooks, acknowledges them, and hands them to the router."""

    def __init__(
        self,
        config: ServerConfig,
        verifier: WebhookVerifier,
        router: EventRouter,
    ) -> None:
        self._config = config
        self._verifier = verifier
        self._router = router
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self._build_app()
        self._runner = web.AppRunner(
            app, shutdown_timeout=self._config.shutdown_timeout
        )
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
            path=self._path,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    @property
    def _path(self) -> str:
        path = self._config.path
        return path if path.startswith("/") else f"/{path}"

    def _build_app(self) -> web.Application:
        app = web.Application(middlewares=[error_middleware])
        app.router.add_post(self._path, self._handle_webhook)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        # Verify the exact bytes received, before any decoding
        body = await request.read()
        self._verifier.verify(body, request.headers)

        payload = WebhookPayload.from_dict(json.loads(body))

        # Handled in the background so slow enrichment never delays the ack
        self._router.dispatch(payload)

        log.info(
            "webhook_received",
            webhook_type=payload.type,
            event_id=payload.data.id,
            service_id=payload.data.service_id,
        )
        return web.json_response({})
