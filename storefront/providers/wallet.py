"""
Wallet providers the network watcher can observe.

The storefront runs its pricing core next to the browser, so the usual
provider is ``BrowserWalletBridge``: the page forwards the injected wallet's
chain id and every ``chainChanged`` event over HTTP and the bridge replays
them to subscribers. ``JsonRpcWalletProvider`` asks a node for
``eth_chainId`` directly and is useful for headless runs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..config import settings
from ..core.errors import ProviderUnavailableError
from ..core.networks import ChainIdLike, normalize_chain_id

logger = logging.getLogger(__name__)

CHAIN_CHANGED = "chainChanged"

ChainChangedHandler = Callable[[Optional[str]], None]


class WalletProvider(ABC):
    """Base wallet provider interface"""

    name: str

    def __init__(self) -> None:
        self._handlers: Dict[str, List[ChainChangedHandler]] = {}

    @abstractmethod
    async def get_current_chain(self) -> ChainIdLike:
        """Return the chain the wallet is connected to"""
        pass

    def subscribe(self, event: str, handler: ChainChangedHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: ChainChangedHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str = CHAIN_CHANGED) -> int:
        return len(self._handlers.get(event, []))

    def _emit(self, event: str, payload: Optional[str]) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(payload)


class BrowserWalletBridge(WalletProvider):
    """Wallet state as reported by the storefront page."""

    name = "browser"

    def __init__(self, chain_id: Optional[ChainIdLike] = None) -> None:
        super().__init__()
        self._chain_id: Optional[str] = None
        self._raw_chain_id: Optional[ChainIdLike] = chain_id
        self._connected = chain_id is not None
        if chain_id is not None:
            self._chain_id = normalize_chain_id(chain_id)

    @property
    def connected(self) -> bool:
        return self._connected

    async def get_current_chain(self) -> ChainIdLike:
        if not self._connected:
            raise ProviderUnavailableError("No wallet connected in the browser", provider=self.name)
        # Unparseable ids are handed back as-is so the watcher can flag them
        return self._chain_id or str(self._raw_chain_id)

    def report_chain(self, chain_id: Optional[ChainIdLike]) -> None:
        """Record a chain reported by the page and notify ``chainChanged`` subscribers."""

        self._raw_chain_id = chain_id
        self._connected = chain_id is not None
        self._chain_id = normalize_chain_id(chain_id) if chain_id is not None else None
        logger.debug("Browser reported chain %s", chain_id)
        self._emit(CHAIN_CHANGED, self._chain_id)

    def disconnect(self) -> None:
        self.report_chain(None)


class JsonRpcWalletProvider(WalletProvider):
    """Reads ``eth_chainId`` from a JSON-RPC node. Never pushes notifications."""

    name = "jsonrpc"
    timeout_s: float = 5.0

    def __init__(self, rpc_url: str, *, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__()
        self.rpc_url = rpc_url
        self._client = client
        self.timeout_s = settings.provider_timeout_seconds

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.rpc_url, json=payload, timeout=self.timeout_s)
        async with httpx.AsyncClient() as client:
            return await client.post(self.rpc_url, json=payload, timeout=self.timeout_s)

    async def get_current_chain(self) -> ChainIdLike:
        payload = {"jsonrpc": "2.0", "method": "eth_chainId", "params": [], "id": 1}
        try:
            response = await self._post(payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderUnavailableError(f"eth_chainId request failed: {exc}", provider=self.name) from exc

        if not isinstance(data, dict) or "result" not in data:
            error = data.get("error") if isinstance(data, dict) else data
            raise ProviderUnavailableError(f"eth_chainId returned no result: {error}", provider=self.name)
        return data["result"]


def build_wallet_provider() -> WalletProvider:
    if settings.wallet_rpc_url:
        return JsonRpcWalletProvider(settings.wallet_rpc_url)
    return BrowserWalletBridge()


__all__ = [
    "BrowserWalletBridge",
    "CHAIN_CHANGED",
    "ChainChangedHandler",
    "JsonRpcWalletProvider",
    "WalletProvider",
    "build_wallet_provider",
]
