import asyncio
from decimal import Decimal

import pytest

from conftest import DEFAULT_PRICES, FakePriceSource
from storefront.core.errors import Condition
from storefront.core.quote_feed import PollOutcome, QuoteFeed, QuoteFeedState, QuoteSnapshot
from storefront.core.tokens import SUPPORTED_TOKENS


# =============================================================================
# QuoteSnapshot
# =============================================================================


def test_snapshot_normalizes_and_freezes_quotes():
    snapshot = QuoteSnapshot(quotes={"ETH/USD": Decimal("2000.50"), "XRP/USD": "0.5"})

    assert snapshot.get("ETH/USD") == "2000.50"
    assert snapshot.price("XRP/USD") == Decimal("0.5")
    assert "BTC/USD" not in snapshot
    with pytest.raises(TypeError):
        snapshot.quotes["ETH/USD"] = "1"  # type: ignore[index]


@pytest.mark.parametrize("bad", ["-1", "NaN", "Infinity", "twelve"])
def test_snapshot_rejects_invalid_prices(bad):
    with pytest.raises(ValueError):
        QuoteSnapshot(quotes={"ETH/USD": bad})


def test_snapshot_avoids_exponent_notation():
    snapshot = QuoteSnapshot(quotes={"FLR/USD": Decimal("1E-7")})

    assert snapshot.get("FLR/USD") == "0.0000001"


# =============================================================================
# Polling
# =============================================================================


@pytest.mark.asyncio
async def test_poll_replaces_snapshot_with_every_token():
    source = FakePriceSource(DEFAULT_PRICES)
    feed = QuoteFeed(source)

    outcome = await feed.poll()

    assert outcome is PollOutcome.APPLIED
    assert feed.snapshot is not None
    assert set(feed.snapshot.as_dict()) == {token.symbol for token in SUPPORTED_TOKENS}
    assert feed.snapshot.get("BTC/USD") == "50000.00"
    assert feed.snapshot.source == "fake"
    assert feed.state.loading is False
    assert feed.state.error is None


@pytest.mark.asyncio
async def test_failed_poll_keeps_previous_snapshot_untouched():
    source = FakePriceSource(DEFAULT_PRICES)
    feed = QuoteFeed(source)
    await feed.poll()
    previous = feed.snapshot

    source.prices = {symbol: "1.00" for symbol in DEFAULT_PRICES}
    source.failures = {"BTC/USD"}
    outcome = await feed.poll()

    assert outcome is PollOutcome.FAILED
    assert feed.snapshot is previous
    assert feed.snapshot.get("ETH/USD") == "2000.00"
    assert feed.state.loading is False
    assert "Failed to fetch price data" in feed.state.error
    assert feed.state.condition == Condition.QUOTE_FETCH_FAILURE


@pytest.mark.asyncio
async def test_first_poll_failure_leaves_no_snapshot():
    feed = QuoteFeed(FakePriceSource(DEFAULT_PRICES, failures={"XRP/USD"}))

    assert await feed.poll() is PollOutcome.FAILED
    assert feed.snapshot is None
    assert feed.state.error


@pytest.mark.asyncio
async def test_error_clears_after_next_good_poll():
    source = FakePriceSource(DEFAULT_PRICES, failures={"ETH/USD"})
    feed = QuoteFeed(source)
    await feed.poll()

    source.failures.clear()
    assert await feed.poll() is PollOutcome.APPLIED
    assert feed.state.error is None
    assert feed.state.condition is None


@pytest.mark.asyncio
async def test_invalid_price_fails_whole_poll():
    source = FakePriceSource({**DEFAULT_PRICES, "FLR/USD": "-0.01"})
    feed = QuoteFeed(source)

    assert await feed.poll() is PollOutcome.FAILED
    assert feed.snapshot is None
    assert "non-negative" in feed.state.error


@pytest.mark.asyncio
async def test_slow_fetch_times_out():
    source = FakePriceSource(DEFAULT_PRICES)
    source.gate.clear()
    feed = QuoteFeed(source, timeout_seconds=0.01)

    assert await feed.poll() is PollOutcome.FAILED
    assert "Timed out" in feed.state.error


@pytest.mark.asyncio
async def test_loading_flag_is_set_while_polling():
    source = FakePriceSource(DEFAULT_PRICES)
    source.gate.clear()
    feed = QuoteFeed(source)
    seen: list[QuoteFeedState] = []
    feed.add_listener(seen.append)

    task = asyncio.create_task(feed.poll())
    await asyncio.sleep(0)
    assert feed.state.loading is True
    assert feed.is_polling

    source.gate.set()
    await task
    assert [state.loading for state in seen] == [True, False]


@pytest.mark.asyncio
async def test_poll_while_in_flight_is_skipped():
    source = FakePriceSource(DEFAULT_PRICES)
    source.gate.clear()
    feed = QuoteFeed(source)

    first = asyncio.create_task(feed.poll())
    await asyncio.sleep(0)
    assert await feed.poll() is PollOutcome.SKIPPED

    source.gate.set()
    assert await first is PollOutcome.APPLIED
    assert len(source.calls) == len(SUPPORTED_TOKENS)


# =============================================================================
# Scheduling
# =============================================================================


@pytest.mark.asyncio
async def test_start_polls_immediately_and_stop_cancels_timer():
    source = FakePriceSource(DEFAULT_PRICES)
    feed = QuoteFeed(source, interval_seconds=3600)

    await feed.start()
    await feed.wait_idle()
    assert feed.snapshot is not None

    await feed.stop()
    assert await feed.poll() is PollOutcome.SKIPPED
    assert len(source.calls) == len(SUPPORTED_TOKENS)


@pytest.mark.asyncio
async def test_tick_during_in_flight_poll_is_skipped_not_queued():
    source = FakePriceSource(DEFAULT_PRICES)
    source.gate.clear()
    feed = QuoteFeed(source, interval_seconds=0.01)

    await feed.start()
    await asyncio.sleep(0.06)
    assert feed.skipped_ticks >= 1
    assert len(source.calls) == len(SUPPORTED_TOKENS)

    source.prices["BTC/USD"] = "40000.00"
    source.gate.set()
    await feed.wait_idle()
    assert feed.snapshot.get("BTC/USD") == "40000.00"

    await feed.stop()


@pytest.mark.asyncio
async def test_stop_during_poll_leaves_state_alone():
    source = FakePriceSource(DEFAULT_PRICES)
    source.gate.clear()
    feed = QuoteFeed(source, interval_seconds=3600)

    await feed.start()
    await asyncio.sleep(0)
    await feed.stop()
    source.gate.set()
    await asyncio.sleep(0)

    assert feed.snapshot is None
    assert feed.is_polling is False
