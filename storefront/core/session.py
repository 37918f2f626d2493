from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, List, Optional, Union

from .converter import AmountLike, ConversionResult, convert
from .errors import Condition
from .network_watcher import NetworkState, NetworkWatcher
from .networks import NetworkDescriptor
from .quote_feed import QuoteFeed, QuoteFeedState
from .tokens import DEFAULT_TOKEN, TokenDescriptor, get_token
from ..providers.prices import PriceSource
from ..providers.wallet import WalletProvider

TokenLike = Union[TokenDescriptor, str]
ResultListener = Callable[[ConversionResult], None]


def _resolve_token(token: TokenLike) -> TokenDescriptor:
    if isinstance(token, TokenDescriptor):
        return token
    resolved = get_token(token)
    if resolved is None:
        raise ValueError(f"Unsupported token '{token}'")
    return resolved


class PricingSession:
    """Owns the network watcher and quote feed for one storefront session.

    Nothing here is module-global: create a session, start it, read its
    snapshots, stop it. After ``stop`` neither the watcher nor the feed can
    change state until the session is started again.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        source: PriceSource,
        *,
        selected_token: TokenLike = DEFAULT_TOKEN,
        poll_interval_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.watcher = NetworkWatcher(provider, logger=self.logger.getChild("network"))
        self.feed = QuoteFeed(
            source,
            interval_seconds=poll_interval_seconds,
            logger=self.logger.getChild("quotes"),
        )
        self._selected_token = _resolve_token(selected_token)
        self._trackers: List[ConversionTracker] = []
        self._running = False

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        await self.watcher.start()
        await self.feed.start()
        self.logger.info("Pricing session started on %s", self.network.name)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        for tracker in list(self._trackers):
            tracker.close()
        await self.feed.stop()
        await self.watcher.stop()
        self.logger.info("Pricing session stopped")

    async def __aenter__(self) -> "PricingSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    # ---------------------------
    # Read accessors
    # ---------------------------
    @property
    def network_state(self) -> NetworkState:
        return self.watcher.state

    @property
    def network(self) -> NetworkDescriptor:
        return self.watcher.network

    @property
    def network_condition(self) -> Optional[Condition]:
        return self.watcher.condition

    @property
    def quotes(self) -> QuoteFeedState:
        return self.feed.state

    @property
    def selected_token(self) -> TokenDescriptor:
        return self._selected_token

    def select_token(self, token: TokenLike) -> TokenDescriptor:
        self._selected_token = _resolve_token(token)
        return self._selected_token

    def convert(self, amount: AmountLike, token: Optional[TokenLike] = None) -> ConversionResult:
        target = _resolve_token(token) if token is not None else self._selected_token
        return convert(amount, self.feed.snapshot, target, self.network)

    def track(self, amount: AmountLike = Decimal("0"), token: Optional[TokenLike] = None) -> "ConversionTracker":
        tracker = ConversionTracker(self, amount, token if token is not None else self._selected_token)
        self._trackers.append(tracker)
        return tracker

    def _forget(self, tracker: "ConversionTracker") -> None:
        if tracker in self._trackers:
            self._trackers.remove(tracker)


class ConversionTracker:
    """Keeps one displayed conversion current.

    Recomputes synchronously whenever the amount, the selected token, the
    quote snapshot or the network changes, and notifies listeners only when
    the result actually differs.
    """

    def __init__(self, session: PricingSession, amount: AmountLike, token: TokenLike) -> None:
        self._session = session
        self._amount = amount
        self._token = _resolve_token(token)
        self._listeners: List[ResultListener] = []
        self._result = self._compute()
        self._closed = False
        session.watcher.add_listener(self._on_network)
        session.feed.add_listener(self._on_quotes)

    @property
    def result(self) -> ConversionResult:
        return self._result

    @property
    def token(self) -> TokenDescriptor:
        return self._token

    def add_listener(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def set_amount(self, amount: AmountLike) -> ConversionResult:
        self._amount = amount
        return self.recompute()

    def select_token(self, token: TokenLike) -> ConversionResult:
        self._token = _resolve_token(token)
        return self.recompute()

    def recompute(self) -> ConversionResult:
        result = self._compute()
        if result != self._result:
            self._result = result
            for listener in list(self._listeners):
                listener(result)
        return self._result

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session.watcher.remove_listener(self._on_network)
        self._session.feed.remove_listener(self._on_quotes)
        self._session._forget(self)
        self._listeners.clear()

    def _compute(self) -> ConversionResult:
        return convert(self._amount, self._session.feed.snapshot, self._token, self._session.network)

    def _on_network(self, state: NetworkState) -> None:
        self.recompute()

    def _on_quotes(self, state: QuoteFeedState) -> None:
        self.recompute()


__all__ = ["ConversionTracker", "PricingSession", "ResultListener", "TokenLike"]
