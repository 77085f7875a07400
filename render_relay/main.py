"""render-relay entry point - wires everything together and runs the relay."""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from render_relay import __version__
from render_relay.config import Settings, load_settings
from render_relay.errors import ConfigError
from render_relay.notify.base import Notifier
from render_relay.notify.discord_notifier import DiscordNotifier
from render_relay.render.client import RenderClient
from render_relay.router import EventRouter
from render_relay.server import WebhookServer
from render_relay.utils.logging import get_logger, setup_logging
from render_relay.webhooks.verify import WebhookVerifier

log = get_logger(__name__)


class Relay:
    """Main application orchestrator."""

    def __init__(
        self,
        settings: Settings,
        notifier: Notifier | None = None,
        render: RenderClient | None = None,
    ) -> None:
        settings.validate_required()
        self.settings = settings

        self.verifier = WebhookVerifier(settings.render.webhook_secret)
        self.render = render or RenderClient(settings.render)
        self.notifier = notifier or DiscordNotifier(settings.discord)
        self.router = EventRouter(
            self.render,
            self.notifier,
            require_git_deploy=settings.render.require_git_deploy,
        )
        self.server = WebhookServer(settings.server, self.verifier, self.router)

    async def start(self) -> None:
        log.info("relay_starting", version=__version__)
        await self.render.start()
        await self.notifier.connect()
        await self.server.start()
        log.info("relay_ready")

    async def stop(self) -> None:
        log.info("relay_stopping")
        await self.server.stop()
        if self.router.in_flight:
            # Chains are best-effort; closing the clients below may fail them
            log.warning("relay_abandoning_in_flight", count=self.router.in_flight)
        await self.notifier.close()
        await self.render.close()
        log.info("relay_stopped")


async def run(settings: Settings) -> None:
    app = Relay(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    try:
        await app.start()
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.version_option(__version__, prog_name="render-relay")
def cli(config_path: str | None, log_level: str | None) -> None:
    """Relay Render failure webhooks to a Discord channel."""
    try:
        settings = load_settings(config_path)
        settings.validate_required()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    try:
        asyncio.run(run(settings))
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    cli()
