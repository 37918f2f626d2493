from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .errors import Condition, PricingError
from .networks import FALLBACK_NETWORK, NetworkDescriptor, lookup, normalize_chain_id
from ..config import settings
from ..providers.wallet import CHAIN_CHANGED, WalletProvider


@dataclass(frozen=True)
class NetworkState:
    """Network the storefront currently labels amounts with. Replaced, never mutated.

    ``condition`` is the outcome of the latest refresh and ``last_chain_id`` the
    latest id the wallet reported, recognized or not.
    """

    network: NetworkDescriptor
    detected: bool = False
    condition: Optional[Condition] = None
    last_chain_id: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NetworkListener = Callable[[NetworkState], None]


class Subscription:
    """Handle for a provider event registration; ``release`` is idempotent."""

    def __init__(self, provider: WalletProvider, event: str, handler: Callable[[Optional[str]], None]) -> None:
        self._provider = provider
        self._event = event
        self._handler = handler
        self._active = True
        provider.subscribe(event, handler)

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        self._provider.unsubscribe(self._event, self._handler)


class NetworkWatcher:
    """Tracks the wallet's chain and maps it through the network registry.

    Chain-change notifications are queued and drained by a single worker so
    refreshes run one at a time, in arrival order, and none is dropped.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        *,
        fallback: NetworkDescriptor = FALLBACK_NETWORK,
        timeout_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)
        self._timeout = timeout_seconds or settings.provider_timeout_seconds
        self._state = NetworkState(network=fallback)
        self._listeners: List[NetworkListener] = []
        self._lock = asyncio.Lock()
        self._pending: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._subscription: Subscription | None = None
        self._closed = False

    # ---------------------------
    # Read accessors
    # ---------------------------
    @property
    def state(self) -> NetworkState:
        return self._state

    @property
    def network(self) -> NetworkDescriptor:
        return self._state.network

    @property
    def condition(self) -> Optional[Condition]:
        return self._state.condition

    @property
    def last_chain_id(self) -> Optional[str]:
        return self._state.last_chain_id

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    def add_listener(self, listener: NetworkListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: NetworkListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> Subscription | None:
        """Subscribe to chain changes and run the initial refresh.

        A stopped watcher can be started again; it gets a fresh subscription
        and an empty notification queue.
        """
        self._closed = False
        if self.provider is not None and self._subscription is None:
            self._pending = asyncio.Queue()
            self._subscription = Subscription(self.provider, CHAIN_CHANGED, self._on_chain_changed)
            self._worker = asyncio.create_task(self._drain(), name="network-watcher")
        await self.refresh()
        return self._subscription

    async def stop(self) -> None:
        self._closed = True
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        self._listeners.clear()

    # ---------------------------
    # Refresh
    # ---------------------------
    def _on_chain_changed(self, chain_id: Optional[str]) -> None:
        if self._closed:
            return
        self.logger.debug("chainChanged received (%s)", chain_id)
        self._pending.put_nowait(chain_id)

    async def _drain(self) -> None:
        pending = self._pending
        while True:
            await pending.get()
            try:
                await self.refresh()
            finally:
                pending.task_done()

    async def wait_idle(self) -> None:
        """Wait until every queued chain-change refresh has been applied."""

        await self._pending.join()

    async def refresh(self) -> NetworkState:
        async with self._lock:
            await self._refresh_locked()
        return self._state

    async def _refresh_locked(self) -> None:
        if self._closed:
            return
        if self.provider is None:
            self._report(Condition.PROVIDER_UNAVAILABLE, "No wallet provider available; keeping %s", self._state.network.name)
            return

        try:
            raw_chain_id = await asyncio.wait_for(self.provider.get_current_chain(), timeout=self._timeout)
        except asyncio.TimeoutError:
            self._report(Condition.PROVIDER_UNAVAILABLE, "Wallet provider timed out after %ss", self._timeout)
            return
        except PricingError as exc:
            self._report(Condition.PROVIDER_UNAVAILABLE, "Wallet provider unavailable: %s", exc.message)
            return
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Error getting network: %s", exc, exc_info=True)
            self._replace(condition=Condition.PROVIDER_UNAVAILABLE)
            return

        if self._closed:
            return

        last_chain_id = normalize_chain_id(raw_chain_id) or str(raw_chain_id)
        descriptor = lookup(raw_chain_id)
        if descriptor is None:
            self._report(
                Condition.UNSUPPORTED_NETWORK,
                "Unsupported network detected: %s; keeping %s",
                raw_chain_id,
                self._state.network.name,
                last_chain_id=last_chain_id,
            )
            return

        self.logger.info("Wallet network is %s (%s)", descriptor.name, descriptor.chain_id)
        self._set_state(NetworkState(network=descriptor, detected=True, last_chain_id=last_chain_id))

    def _report(self, condition: Condition, message: str, *args: object, **changes: object) -> None:
        self.logger.warning(message, *args)
        self._replace(condition=condition, **changes)

    def _replace(self, **changes: object) -> None:
        # Keeps the current network; only the refresh outcome changes
        self._set_state(replace(self._state, updated_at=datetime.now(timezone.utc), **changes))

    def _set_state(self, state: NetworkState) -> None:
        if self._closed:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Network listener failed: %s", exc, exc_info=True)


__all__ = ["NetworkListener", "NetworkState", "NetworkWatcher", "Subscription"]
