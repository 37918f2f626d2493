from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import Condition, QuoteFetchError
from .tokens import SUPPORTED_TOKENS, TokenDescriptor
from ..config import settings
from ..providers.prices import PriceSource


def _parse_price(value: object) -> Decimal:
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid price {value!r}") from exc
    if not price.is_finite() or price < 0:
        raise ValueError(f"Price must be a non-negative finite decimal, got {value!r}")
    return price


@dataclass(frozen=True)
class QuoteSnapshot:
    """Quotes from one completed poll, keyed by pair symbol."""

    quotes: Mapping[str, str]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = ""
    placeholder: bool = False

    def __post_init__(self) -> None:
        normalized = {symbol: format(_parse_price(value), "f") for symbol, value in dict(self.quotes).items()}
        object.__setattr__(self, "quotes", MappingProxyType(normalized))

    def get(self, symbol: str) -> Optional[str]:
        return self.quotes.get(symbol)

    def price(self, symbol: str) -> Optional[Decimal]:
        value = self.quotes.get(symbol)
        return Decimal(value) if value is not None else None

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.quotes

    def __len__(self) -> int:
        return len(self.quotes)

    def as_dict(self) -> dict[str, str]:
        return dict(self.quotes)


@dataclass(frozen=True)
class QuoteFeedState:
    """Read-only view of the feed handed to the view layer."""

    snapshot: Optional[QuoteSnapshot] = None
    loading: bool = False
    error: Optional[str] = None
    last_polled_at: Optional[datetime] = None

    @property
    def condition(self) -> Optional[Condition]:
        return Condition.QUOTE_FETCH_FAILURE if self.error else None


class PollOutcome(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


FeedListener = Callable[[QuoteFeedState], None]


class QuoteFeed:
    """Polls a price source for the fixed token set.

    A poll either replaces the snapshot with one quote per token or leaves the
    previous snapshot in place and records an error. At most one poll is in
    flight; timer ticks that land on a running poll are skipped.
    """

    def __init__(
        self,
        source: PriceSource,
        tokens: Sequence[TokenDescriptor] = SUPPORTED_TOKENS,
        *,
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.source = source
        self.tokens: Tuple[TokenDescriptor, ...] = tuple(tokens)
        self.interval_seconds = interval_seconds or settings.quote_poll_interval_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._timeout = timeout_seconds or settings.request_timeout_seconds
        self._state = QuoteFeedState()
        self._listeners: List[FeedListener] = []
        self._polling = False
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._closed = False
        self.skipped_ticks = 0

    # ---------------------------
    # Read accessors
    # ---------------------------
    @property
    def state(self) -> QuoteFeedState:
        return self._state

    @property
    def snapshot(self) -> Optional[QuoteSnapshot]:
        return self._state.snapshot

    @property
    def is_polling(self) -> bool:
        return self._polling

    def add_listener(self, listener: FeedListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: FeedListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def start(self) -> None:
        if self._timer is not None:
            return
        self._closed = False
        self.logger.info(
            "Quote feed starting; source=%s tokens=%d interval=%ss",
            self.source.name,
            len(self.tokens),
            self.interval_seconds,
        )
        self._tick()
        self._timer = asyncio.create_task(self._run_timer(), name="quote-feed-timer")

    async def stop(self) -> None:
        self._closed = True
        for task in (self._timer, self._inflight):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer = None
        self._inflight = None
        self._listeners.clear()

    async def wait_idle(self) -> None:
        """Wait for the poll currently in flight, if any."""

        task = self._inflight
        if task is not None and not task.done():
            await asyncio.shield(task)

    async def _run_timer(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.interval_seconds)
            self._tick()

    def _tick(self) -> None:
        if self._polling or (self._inflight is not None and not self._inflight.done()):
            self.skipped_ticks += 1
            self.logger.debug("Quote poll still in flight; skipping tick")
            return
        self._inflight = asyncio.create_task(self.poll(), name="quote-feed-poll")

    # ---------------------------
    # Polling
    # ---------------------------
    async def poll(self) -> PollOutcome:
        if self._closed:
            return PollOutcome.SKIPPED
        if self._polling:
            self.logger.debug("Quote poll already in flight; skipping")
            return PollOutcome.SKIPPED

        self._polling = True
        try:
            self._set_state(replace(self._state, loading=True))
            try:
                prices = await self._fetch_all(self.tokens)
                snapshot = QuoteSnapshot(
                    quotes=prices,
                    source=self.source.name,
                    placeholder=self.source.is_placeholder,
                )
            except QuoteFetchError as exc:
                return self._fail(exc.message, exc)
            except ValueError as exc:
                return self._fail(f"Malformed quote data: {exc}", exc)
            except Exception as exc:  # noqa: BLE001
                return self._fail(str(exc) or exc.__class__.__name__, exc)

            if self._closed:
                return PollOutcome.SKIPPED
            self._set_state(
                QuoteFeedState(
                    snapshot=snapshot,
                    loading=False,
                    error=None,
                    last_polled_at=snapshot.fetched_at,
                )
            )
            self.logger.debug("Quote snapshot replaced with %d quotes", len(snapshot))
            return PollOutcome.APPLIED
        finally:
            self._polling = False

    async def _fetch_all(self, tokens: Iterable[TokenDescriptor]) -> dict[str, Decimal]:
        tasks = [asyncio.ensure_future(self._fetch(token)) for token in tokens]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return dict(results)

    async def _fetch(self, token: TokenDescriptor) -> Tuple[str, Decimal]:
        try:
            value = await asyncio.wait_for(self.source.fetch_quote(token), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise QuoteFetchError(
                f"Timed out after {self._timeout}s fetching {token.symbol}",
                symbol=token.symbol,
                provider=self.source.name,
            ) from exc
        try:
            return token.symbol, _parse_price(value)
        except ValueError as exc:
            raise QuoteFetchError(str(exc), symbol=token.symbol, provider=self.source.name) from exc

    def _fail(self, detail: str, exc: BaseException) -> PollOutcome:
        if self._closed:
            return PollOutcome.SKIPPED
        self.logger.warning("Error fetching prices: %s", detail, exc_info=exc)
        self._set_state(
            replace(
                self._state,
                loading=False,
                error=f"Failed to fetch price data: {detail}",
                last_polled_at=datetime.now(timezone.utc),
            )
        )
        return PollOutcome.FAILED

    def _set_state(self, state: QuoteFeedState) -> None:
        if self._closed:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("Quote listener failed: %s", exc, exc_info=True)


__all__ = [
    "FeedListener",
    "PollOutcome",
    "QuoteFeed",
    "QuoteFeedState",
    "QuoteSnapshot",
]
