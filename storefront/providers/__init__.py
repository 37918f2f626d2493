from .prices import CoingeckoPriceSource, FixedPriceSource, PriceSource, build_price_source
from .wallet import (
    CHAIN_CHANGED,
    BrowserWalletBridge,
    JsonRpcWalletProvider,
    WalletProvider,
    build_wallet_provider,
)

__all__ = [
    "BrowserWalletBridge",
    "CHAIN_CHANGED",
    "CoingeckoPriceSource",
    "FixedPriceSource",
    "JsonRpcWalletProvider",
    "PriceSource",
    "WalletProvider",
    "build_price_source",
    "build_wallet_provider",
]
