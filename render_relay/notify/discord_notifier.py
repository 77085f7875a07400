"""Discord notifier using discord.py."""

from __future__ import annotations

import asyncio
from typing import Any

import discord

from render_relay.config import DiscordConfig
from render_relay.errors import DeliveryError
from render_relay.notify.base import Notifier
from render_relay.notify.message import FailureNotification
from render_relay.utils.logging import get_logger

log = get_logger(__name__)

FAILURE_COLOR = 0xED4245


class DiscordNotifier(Notifier):
    """Posts notifications to one channel over a shared gateway session."""

    def __init__(
        self,
        config: DiscordConfig,
        client: discord.Client | None = None,
    ) -> None:
        self._config = config
        if client is None:
            intents = discord.Intents.none()
            intents.guilds = True
            client = discord.Client(intents=intents)
        self._client = client
        self._task: asyncio.Task[None] | None = None
        self._setup_handlers()

    @property
    def platform_name(self) -> str:
        return "discord"

    def _setup_handlers(self) -> None:
        @self._client.event
        async def on_ready() -> None:
            log.info("discord_connected", user=str(self._client.user))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        # login() raises LoginFailure on a bad token before any task starts
        await self._client.login(self._config.token)
        self._task = asyncio.create_task(
            self._client.connect(),
            name="discord-client",
        )
        log.info("discord_notifier_starting")
        await asyncio.wait_for(
            self._client.wait_until_ready(),
            timeout=self._config.ready_timeout,
        )

    async def close(self) -> None:
        await self._client.close()
        if self._task is not None:
            try:
                await self._task
            except (asyncio.CancelledError, discord.DiscordException):
                log.debug("discord_task_ended_with_error")
            self._task = None
        log.info("discord_notifier_stopped")

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def send(self, notification: FailureNotification) -> None:
        channel = await self._resolve_channel()

        embed = discord.Embed(
            title=notification.title,
            description=notification.description,
            color=FAILURE_COLOR,
        )
        if notification.branch:
            embed.add_field(name="Branch", value=notification.branch, inline=True)
        if notification.repo:
            embed.add_field(name="Repo", value=notification.repo, inline=True)

        kwargs: dict[str, Any] = {"embed": embed}
        if notification.logs_url:
            view = discord.ui.View(timeout=None)
            view.add_item(
                discord.ui.Button(
                    label="View Logs",
                    style=discord.ButtonStyle.link,
                    url=notification.logs_url,
                )
            )
            kwargs["view"] = view

        await channel.send(**kwargs)
        log.info(
            "notification_sent",
            platform=self.platform_name,
            channel_id=self._config.channel_id,
            service=notification.service_name,
        )

    async def _resolve_channel(self) -> discord.abc.Messageable:
        channel_ref = self._config.channel_id
        try:
            channel_id = int(channel_ref)
        except ValueError:
            raise DeliveryError(f"invalid Discord channel id {channel_ref!r}") from None

        channel: Any = self._client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden) as e:
                raise DeliveryError(
                    f"unable to find specified Discord channel {channel_ref}"
                ) from e

        # Voice and stage channels qualify through their text chat
        if not isinstance(channel, discord.abc.Messageable):
            raise DeliveryError(f"specified Discord channel {channel_ref} is not sendable")
        return channel
