"""Tests for event routing and background dispatch."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from render_relay.errors import DeliveryError, FetchError
from render_relay.notify.base import Notifier
from render_relay.render.models import Deploy, Event, Service
from render_relay.router import EventRouter
from render_relay.webhooks.models import WebhookData, WebhookPayload


class FakeNotifier(Notifier):
    def __init__(self) -> None:
        self.sent = []

    @property
    def platform_name(self) -> str:
        return "fake"

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def send(self, notification) -> None:
        self.sent.append(notification)


def _payload(event_type: str = "server_failed") -> WebhookPayload:
    return WebhookPayload(type=event_type, data=WebhookData(id="evt_1", service_id="srv_1"))


@pytest.fixture
def render():
    render = MagicMock()
    render.get_event = AsyncMock(
        return_value=Event(id="evt_1", type="server_failed", details={"oomKilled": True})
    )
    render.get_service = AsyncMock(
        return_value=Service(id="srv_1", name="api", dashboard_url="https://x")
    )
    render.get_deploy = AsyncMock(return_value=Deploy(id="dep_1", commit={"id": "abc"}))
    return render


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def errors():
    return []


@pytest.fixture
def router(render, notifier, errors):
    return EventRouter(render, notifier, on_error=lambda p, e: errors.append((p, e)))


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

class TestRouting:
    @pytest.mark.parametrize(
        "event_type", ["deploy_started", "deploy_ended", "server_available", "build_failed"]
    )
    async def test_unhandled_types_make_no_calls(self, router, render, notifier, event_type):
        await router.handle(_payload(event_type))
        render.get_event.assert_not_awaited()
        render.get_service.assert_not_awaited()
        render.get_deploy.assert_not_awaited()
        assert notifier.sent == []

    async def test_server_failed_sends_notification(self, router, render, notifier):
        await router.handle(_payload())

        render.get_event.assert_awaited_once_with("evt_1")
        render.get_service.assert_awaited_once_with("srv_1")
        render.get_deploy.assert_not_awaited()
        assert len(notifier.sent) == 1
        sent = notifier.sent[0]
        assert sent.title == "api Failed"
        assert sent.description == "Out of Memory"
        assert sent.logs_url == "https://x/logs"

    @pytest.mark.parametrize(
        "details, description",
        [
            ({"nonZeroExit": 1}, "Exited with status 1"),
            ({"oomKilled": True}, "Out of Memory"),
            ({"timedOutSeconds": 30, "timedOutReason": "during deploy"}, "Timed out during deploy"),
            ({"unhealthy": "health check failed"}, "health check failed"),
            ({}, "Failed for unknown reason"),
        ],
    )
    async def test_descriptions(self, router, render, notifier, details, description):
        render.get_event.return_value = Event(id="evt_1", type="server_failed", details=details)
        await router.handle(_payload())
        assert notifier.sent[0].description == description


# ---------------------------------------------------------------------------
# Deploy gating
# ---------------------------------------------------------------------------

class TestDeployGate:
    @pytest.fixture
    def gated(self, render, notifier):
        render.get_event.return_value = Event(
            id="evt_1", type="server_failed", details={"deployId": "dep_1", "nonZeroExit": 2}
        )
        return EventRouter(render, notifier, require_git_deploy=True)

    async def test_image_backed_suppressed(self, gated, render, notifier):
        render.get_deploy.return_value = Deploy(id="dep_1", commit=None)
        await gated.handle(_payload())
        render.get_deploy.assert_awaited_once_with("srv_1", "dep_1")
        render.get_service.assert_not_awaited()
        assert notifier.sent == []

    async def test_git_backed_notifies(self, gated, notifier):
        await gated.handle(_payload())
        assert len(notifier.sent) == 1
        assert notifier.sent[0].description == "Exited with status 2"

    async def test_event_without_deploy_id_skips_gate(self, gated, render, notifier):
        render.get_event.return_value = Event(id="evt_1", type="server_failed", details={})
        await gated.handle(_payload())
        render.get_deploy.assert_not_awaited()
        assert len(notifier.sent) == 1

    async def test_gate_off_by_default(self, router, render, notifier):
        render.get_event.return_value = Event(
            id="evt_1", type="server_failed", details={"deployId": "dep_1"}
        )
        render.get_deploy.return_value = Deploy(id="dep_1", commit=None)
        await router.handle(_payload())
        render.get_deploy.assert_not_awaited()
        assert len(notifier.sent) == 1


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:
    async def test_fetch_error_goes_to_sink(self, router, render, notifier, errors):
        render.get_event.side_effect = FetchError("event", 404)
        task = router.dispatch(_payload())
        await task

        assert task.exception() is None
        assert notifier.sent == []
        render.get_service.assert_not_awaited()
        assert len(errors) == 1
        payload, exc = errors[0]
        assert payload.data.id == "evt_1"
        assert isinstance(exc, FetchError)
        assert exc.status == 404

    async def test_delivery_error_goes_to_sink(self, render, errors):
        notifier = MagicMock()
        notifier.platform_name = "fake"
        notifier.send = AsyncMock(side_effect=DeliveryError("not sendable"))
        router = EventRouter(render, notifier, on_error=lambda p, e: errors.append((p, e)))

        await router.dispatch(_payload())
        assert isinstance(errors[0][1], DeliveryError)

    async def test_default_sink_logs_and_swallows(self, render, notifier):
        render.get_event.side_effect = FetchError("event", 500)
        router = EventRouter(render, notifier)
        task = router.dispatch(_payload())
        await task
        assert task.exception() is None
        assert notifier.sent == []

    async def test_dispatch_returns_before_completion(self, router, render, notifier):
        gate = asyncio.Event()

        async def slow_event(event_id):
            await gate.wait()
            return Event(id=event_id, type="server_failed", details={})

        render.get_event.side_effect = slow_event
        task = router.dispatch(_payload())
        await asyncio.sleep(0)

        assert router.in_flight == 1
        assert notifier.sent == []

        gate.set()
        await task
        assert router.in_flight == 0
        assert len(notifier.sent) == 1

    async def test_replay_is_not_deduplicated(self, router, notifier):
        payload = _payload()
        await asyncio.gather(router.dispatch(payload), router.dispatch(payload))
        assert len(notifier.sent) == 2

    async def test_chains_are_independent(self, router, render, notifier, errors):
        calls = 0

        async def flaky_event(event_id):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise FetchError("event", 502)
            return Event(id=event_id, type="server_failed", details={"oomKilled": True})

        render.get_event.side_effect = flaky_event
        await asyncio.gather(router.dispatch(_payload()), router.dispatch(_payload()))
        assert len(errors) == 1
        assert len(notifier.sent) == 1

    async def test_chain_logs_carry_webhook_ids(self, router, render, errors):
        seen = {}

        async def failing_event(event_id):
            seen.update(structlog.contextvars.get_contextvars())
            raise FetchError("event", 404)

        render.get_event.side_effect = failing_event
        await router.dispatch(_payload())

        assert seen == {
            "webhook_type": "server_failed",
            "event_id": "evt_1",
            "service_id": "srv_1",
        }
        assert len(errors) == 1
        assert structlog.contextvars.get_contextvars() == {}
