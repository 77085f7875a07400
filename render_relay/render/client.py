"""Render REST API client for enriching slim webhook payloads."""

from __future__ import annotations

from typing import Any

import httpx

from render_relay.config import RenderConfig
from render_relay.errors import FetchError
from render_relay.render.models import Deploy, Event, Service
from render_relay.utils.logging import get_logger

log = get_logger(__name__)


class RenderClient:
    """Read-only access to the events, services and deploys endpoints."""

    def __init__(
        self,
        config: RenderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._client is not None:
            return
        kwargs: dict[str, Any] = {}
        if self._config.timeout is not None:
            kwargs["timeout"] = self._config.timeout
        self._client = httpx.AsyncClient(
            base_url=self._config.api_url.rstrip("/"),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {self._config.api_token}",
            },
            transport=self._transport,
            **kwargs,
        )
        log.info("render_client_started", api_url=self._config.api_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        log.info("render_client_closed")

    async def __aenter__(self) -> RenderClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def get_event(self, event_id: str) -> Event:
        """Fetch the event that triggered a webhook.

        Some events carry detail the webhook omits, such as the deploy id
        and the failure reason.
        """
        return Event.from_api(await self._get("event", f"/events/{event_id}"))

    async def get_service(self, service_id: str) -> Service:
        return Service.from_api(await self._get("service", f"/services/{service_id}"))

    async def get_deploy(self, service_id: str, deploy_id: str) -> Deploy:
        return Deploy.from_api(
            await self._get("deploy", f"/services/{service_id}/deploys/{deploy_id}")
        )

    async def _get(self, resource: str, path: str) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("RenderClient used before start()")
        response = await self._client.get(path)
        if not response.is_success:
            raise FetchError(resource, response.status_code, str(response.url))
        log.debug("render_fetched", resource=resource, path=path)
        return response.json()
