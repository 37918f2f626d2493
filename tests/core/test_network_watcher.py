import asyncio

import pytest

from conftest import FakeWalletProvider
from storefront.core.errors import Condition
from storefront.core.network_watcher import NetworkState, NetworkWatcher
from storefront.core.networks import FALLBACK_NETWORK, SUPPORTED_NETWORKS
from storefront.providers.wallet import CHAIN_CHANGED


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_no_provider_keeps_fallback():
    watcher = NetworkWatcher(None)

    subscription = await watcher.start()

    assert subscription is None
    assert watcher.network is FALLBACK_NETWORK
    assert watcher.state.detected is False
    assert watcher.condition == Condition.PROVIDER_UNAVAILABLE
    await watcher.stop()


@pytest.mark.asyncio
async def test_recognized_chain_replaces_state():
    provider = FakeWalletProvider(["0x1"])
    watcher = NetworkWatcher(provider)
    before = watcher.state

    await watcher.start()

    assert watcher.network is SUPPORTED_NETWORKS["0x1"]
    assert watcher.state is not before
    assert watcher.state.detected is True
    assert watcher.condition is None
    await watcher.stop()


@pytest.mark.asyncio
async def test_numeric_chain_ids_are_recognized():
    watcher = NetworkWatcher(FakeWalletProvider([11155111]))

    await watcher.refresh()

    assert watcher.network.name == "Sepolia"
    assert watcher.last_chain_id == "0xaa36a7"


@pytest.mark.asyncio
async def test_unsupported_chain_keeps_last_known_network():
    provider = FakeWalletProvider(["0x1", "0x89"])
    watcher = NetworkWatcher(provider)
    await watcher.refresh()
    known = watcher.state

    await watcher.refresh()

    assert watcher.network is known.network
    assert watcher.condition == Condition.UNSUPPORTED_NETWORK
    assert watcher.last_chain_id == "0x89"


@pytest.mark.asyncio
async def test_unsupported_chain_before_any_detection_keeps_fallback():
    watcher = NetworkWatcher(FakeWalletProvider(["not-a-chain"]))

    await watcher.refresh()

    assert watcher.network is FALLBACK_NETWORK
    assert watcher.condition == Condition.UNSUPPORTED_NETWORK


@pytest.mark.asyncio
async def test_provider_errors_become_provider_unavailable(unavailable_error):
    provider = FakeWalletProvider(["0x1", unavailable_error, RuntimeError("socket closed")])
    watcher = NetworkWatcher(provider)
    await watcher.refresh()
    known = watcher.state

    await watcher.refresh()
    assert watcher.condition == Condition.PROVIDER_UNAVAILABLE
    assert watcher.network is known.network

    await watcher.refresh()
    assert watcher.condition == Condition.PROVIDER_UNAVAILABLE
    assert watcher.network is known.network


@pytest.mark.asyncio
async def test_provider_timeout_is_provider_unavailable():
    provider = FakeWalletProvider(["0x1"])
    provider.gate.clear()
    watcher = NetworkWatcher(provider, timeout_seconds=0.01)

    await watcher.refresh()

    assert watcher.network is FALLBACK_NETWORK
    assert watcher.condition == Condition.PROVIDER_UNAVAILABLE


@pytest.mark.asyncio
async def test_notifications_arriving_during_refresh_apply_in_order():
    provider = FakeWalletProvider(["0x1", "0xaa36a7", "0x72"])
    watcher = NetworkWatcher(provider)
    await watcher.start()
    transitions: list[NetworkState] = []
    watcher.add_listener(transitions.append)

    provider.gate.clear()
    provider.notify("0xaa36a7")
    provider.notify("0x72")
    await _settle()
    # One refresh is blocked on the provider; the second waits its turn
    assert provider.calls == 2

    provider.gate.set()
    await watcher.wait_idle()

    assert [state.network.chain_id for state in transitions] == ["0xaa36a7", "0x72"]
    assert provider.calls == 3
    assert watcher.network.chain_id == "0x72"
    await watcher.stop()


@pytest.mark.asyncio
async def test_each_notification_triggers_one_refresh():
    provider = FakeWalletProvider(["0x1"])
    watcher = NetworkWatcher(provider)
    await watcher.start()

    for _ in range(4):
        provider.notify("0x1")
    await watcher.wait_idle()

    assert provider.calls == 5
    await watcher.stop()


@pytest.mark.asyncio
async def test_stop_releases_subscription_and_ignores_late_events():
    provider = FakeWalletProvider(["0x1", "0xaa36a7"])
    watcher = NetworkWatcher(provider)
    subscription = await watcher.start()
    assert provider.listener_count(CHAIN_CHANGED) == 1

    await watcher.stop()

    assert subscription.active is False
    assert provider.listener_count(CHAIN_CHANGED) == 0
    provider.notify("0xaa36a7")
    await watcher.refresh()
    assert watcher.network.chain_id == "0x1"
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_stop_during_refresh_does_not_apply_result():
    provider = FakeWalletProvider(["0xaa36a7"])
    watcher = NetworkWatcher(provider)
    await watcher.start()
    provider.gate.clear()
    provider.chains = ["0x1"]

    provider.notify()
    await _settle()
    await watcher.stop()
    provider.gate.set()
    await asyncio.sleep(0)

    assert watcher.network.chain_id == "0xaa36a7"


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_refresh():
    watcher = NetworkWatcher(FakeWalletProvider(["0x1"]))

    def explode(state):
        raise RuntimeError("view crashed")

    watcher.add_listener(explode)
    await watcher.refresh()

    assert watcher.network.chain_id == "0x1"


@pytest.mark.asyncio
async def test_condition_changes_replace_state_and_reach_listeners(unavailable_error):
    provider = FakeWalletProvider(["0x1", unavailable_error, "0x89"])
    watcher = NetworkWatcher(provider)
    await watcher.refresh()
    seen: list[NetworkState] = []
    watcher.add_listener(seen.append)

    await watcher.refresh()
    await watcher.refresh()

    assert [state.condition for state in seen] == [
        Condition.PROVIDER_UNAVAILABLE,
        Condition.UNSUPPORTED_NETWORK,
    ]
    assert all(state.network.chain_id == "0x1" for state in seen)
    assert seen[-1].last_chain_id == "0x89"
    assert watcher.state is seen[-1]


@pytest.mark.asyncio
async def test_recognized_chain_clears_condition():
    watcher = NetworkWatcher(FakeWalletProvider(["0x89", "0x1"]))

    await watcher.refresh()
    assert watcher.state.condition == Condition.UNSUPPORTED_NETWORK

    await watcher.refresh()
    assert watcher.state.condition is None
    assert watcher.state.last_chain_id == "0x1"


@pytest.mark.asyncio
async def test_watcher_can_restart_after_stop():
    provider = FakeWalletProvider(["0x72", "0x1"])
    watcher = NetworkWatcher(provider)
    first = await watcher.start()
    await watcher.stop()

    second = await watcher.start()

    assert second is not None and second is not first
    assert second.active is True
    assert provider.listener_count(CHAIN_CHANGED) == 1
    assert watcher.network.chain_id == "0x1"

    provider.chains = ["0xaa36a7"]
    provider.notify("0xaa36a7")
    await watcher.wait_idle()
    assert watcher.network.chain_id == "0xaa36a7"
    await watcher.stop()
