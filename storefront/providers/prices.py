import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config import settings
from ..core.errors import QuoteFetchError
from ..core.tokens import TokenDescriptor

logger = logging.getLogger(__name__)


class PriceSource(ABC):
    """Base price source interface"""

    name: str
    timeout_s: float = 10
    # Placeholder sources serve demo data that must not be shown as real pricing
    is_placeholder: bool = False

    @abstractmethod
    async def fetch_quote(self, token: TokenDescriptor) -> Decimal:
        """Return the current price for one quoted pair"""
        pass

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy" if await self.ready() else "unavailable"}


class CoingeckoPriceSource(PriceSource):
    """Coingecko simple-price lookups, one request per token"""

    name = "coingecko"

    def __init__(self, *, client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None):
        self.api_key = settings.coingecko_api_key
        self.base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self.timeout_s = settings.request_timeout_seconds
        self._client = client

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            return await self._client.get(url, headers=self._build_headers(), params=params, timeout=self.timeout_s)
        async with httpx.AsyncClient() as client:
            return await client.get(url, headers=self._build_headers(), params=params, timeout=self.timeout_s)

    async def health_check(self) -> Dict[str, Any]:
        try:
            response = await self._get("/ping")
            response.raise_for_status()
            return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def fetch_quote(self, token: TokenDescriptor) -> Decimal:
        vs_currency = token.quote.lower()
        params = {
            "ids": token.coingecko_id,
            "vs_currencies": vs_currency,
            "precision": "full",
        }

        try:
            response = await self._get("/simple/price", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise QuoteFetchError(
                f"Coingecko request for {token.symbol} failed: {exc}",
                symbol=token.symbol,
                provider=self.name,
            ) from exc

        raw = (data.get(token.coingecko_id) or {}).get(vs_currency) if isinstance(data, dict) else None
        if raw is None:
            raise QuoteFetchError(f"Coingecko returned no price for {token.symbol}", symbol=token.symbol, provider=self.name)

        try:
            # str() keeps the float's shortest repr instead of its binary expansion
            return Decimal(str(raw))
        except InvalidOperation as exc:
            raise QuoteFetchError(f"Malformed price for {token.symbol}: {raw!r}", symbol=token.symbol, provider=self.name) from exc


DEFAULT_PLACEHOLDER_PRICES: Dict[str, str] = {
    "FLR/USD": "0.02",
    "XRP/USD": "0.50",
    "BTC/USD": "50000.00",
    "ETH/USD": "2000.00",
}


class FixedPriceSource(PriceSource):
    """Static placeholder prices for offline demos; snapshots are marked as placeholders."""

    name = "fixed"
    is_placeholder = True

    def __init__(self, prices: Optional[Mapping[str, Any]] = None):
        self._prices = dict(prices if prices is not None else DEFAULT_PLACEHOLDER_PRICES)

    async def fetch_quote(self, token: TokenDescriptor) -> Decimal:
        if token.symbol not in self._prices:
            raise QuoteFetchError(f"No placeholder price for {token.symbol}", symbol=token.symbol, provider=self.name)
        return Decimal(str(self._prices[token.symbol]))


def build_price_source() -> PriceSource:
    if settings.uses_fixed_prices:
        logger.warning("Using placeholder prices; conversions will not be computable")
        return FixedPriceSource()
    return CoingeckoPriceSource()


__all__ = [
    "CoingeckoPriceSource",
    "DEFAULT_PLACEHOLDER_PRICES",
    "FixedPriceSource",
    "PriceSource",
    "build_price_source",
]
