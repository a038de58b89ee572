from unittest.mock import AsyncMock, MagicMock

import pytest

from fleetlink.network import NetworkMonitor


@pytest.fixture
def client():
    client = MagicMock()
    client.reset_backend = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_first_event_records_state_without_reset(client):
    monitor = NetworkMonitor(client)

    assert await monitor.update(True, "wifi") is False
    assert monitor.is_online and monitor.network_type == "wifi"
    client.reset_backend.assert_not_awaited()


@pytest.mark.asyncio
async def test_reconnect_resets_discovery(client):
    monitor = NetworkMonitor(client)
    await monitor.update(True, "wifi")

    assert await monitor.update(False, "none") is False
    assert monitor.is_online is False
    assert await monitor.update(True, "wifi") is True
    client.reset_backend.assert_awaited_once()


@pytest.mark.asyncio
async def test_network_type_change_while_online_resets_discovery(client):
    monitor = NetworkMonitor(client)
    await monitor.update(True, "wifi")

    assert await monitor.update(True, "cellular") is True
    assert await monitor.update(True, "cellular") is False
    assert client.reset_backend.await_count == 1


@pytest.mark.asyncio
async def test_unknown_connectivity_counts_as_offline(client):
    monitor = NetworkMonitor(client)

    await monitor.update(None, "unknown")

    assert monitor.is_online is False


@pytest.mark.asyncio
async def test_listeners_receive_online_state(client):
    monitor = NetworkMonitor(client)
    seen = []
    async_listener = AsyncMock()
    unsubscribe = monitor.add_listener(seen.append)
    monitor.add_listener(async_listener)
    monitor.add_listener(MagicMock(side_effect=RuntimeError("bad listener")))

    await monitor.update(False, "none")
    unsubscribe()
    await monitor.update(True, "wifi")

    assert seen == [False]
    assert [call.args for call in async_listener.await_args_list] == [(False,), (True,)]
