import asyncio
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import pytest

from storefront.core.errors import ProviderUnavailableError, QuoteFetchError
from storefront.core.networks import SUPPORTED_NETWORKS
from storefront.core.quote_feed import QuoteSnapshot
from storefront.core.tokens import TokenDescriptor
from storefront.providers.prices import PriceSource
from storefront.providers.wallet import CHAIN_CHANGED, WalletProvider


class FakePriceSource(PriceSource):
    """In-memory price source with an optional gate to hold fetches open."""

    name = "fake"

    def __init__(self, prices: Dict[str, str], failures: Iterable[str] = ()):
        self.prices = dict(prices)
        self.failures = set(failures)
        self.calls: List[str] = []
        self.gate = asyncio.Event()
        self.gate.set()

    async def fetch_quote(self, token: TokenDescriptor) -> Decimal:
        self.calls.append(token.symbol)
        await self.gate.wait()
        if token.symbol in self.failures:
            raise QuoteFetchError(f"boom fetching {token.symbol}", symbol=token.symbol, provider=self.name)
        return Decimal(self.prices[token.symbol])


class FakeWalletProvider(WalletProvider):
    """Returns queued chain ids in call order; the last one repeats."""

    name = "fake-wallet"

    def __init__(self, chains: Iterable[object]):
        super().__init__()
        self.chains = list(chains)
        self.calls = 0
        self.gate = asyncio.Event()
        self.gate.set()

    async def get_current_chain(self):
        self.calls += 1
        await self.gate.wait()
        value = self.chains.pop(0) if len(self.chains) > 1 else self.chains[0]
        if isinstance(value, Exception):
            raise value
        return value

    def notify(self, chain_id: Optional[str] = None) -> None:
        self._emit(CHAIN_CHANGED, chain_id)


DEFAULT_PRICES = {
    "FLR/USD": "0.02",
    "XRP/USD": "0.50",
    "BTC/USD": "50000.00",
    "ETH/USD": "2000.00",
}


@pytest.fixture
def prices() -> Dict[str, str]:
    return dict(DEFAULT_PRICES)


@pytest.fixture
def snapshot(prices) -> QuoteSnapshot:
    return QuoteSnapshot(quotes=prices, source="fake")


@pytest.fixture
def ethereum():
    return SUPPORTED_NETWORKS["0x1"]


@pytest.fixture
def coston2():
    return SUPPORTED_NETWORKS["0x72"]


@pytest.fixture
def unavailable_error():
    return ProviderUnavailableError("wallet locked", provider="fake-wallet")
