"""Quoted tokens a price can be displayed in."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..config import settings


@dataclass(frozen=True)
class TokenDescriptor:
    symbol: str
    display_name: str
    coingecko_id: str
    icon: str = ""
    gradient: str = ""
    icon_class: str = ""

    @property
    def base(self) -> str:
        return self.symbol.split("/", 1)[0]

    @property
    def quote(self) -> str:
        return self.symbol.split("/", 1)[-1]


SUPPORTED_TOKENS: Tuple[TokenDescriptor, ...] = (
    TokenDescriptor(
        symbol="FLR/USD",
        display_name="Flare",
        coingecko_id="flare-networks",
        icon="💧",
        gradient="from-blue-500 to-cyan-400",
        icon_class="text-blue-500",
    ),
    TokenDescriptor(
        symbol="XRP/USD",
        display_name="XRP",
        coingecko_id="ripple",
        icon="🌊",
        gradient="from-cyan-500 to-teal-400",
        icon_class="text-cyan-600",
    ),
    TokenDescriptor(
        symbol="BTC/USD",
        display_name="Bitcoin",
        coingecko_id="bitcoin",
        icon="🪙",
        gradient="from-amber-400 to-orange-500",
        icon_class="text-amber-500",
    ),
    TokenDescriptor(
        symbol="ETH/USD",
        display_name="Ethereum",
        coingecko_id="ethereum",
        icon="💎",
        gradient="from-purple-500 to-indigo-500",
        icon_class="text-purple-600",
    ),
)

_BY_SYMBOL: Dict[str, TokenDescriptor] = {token.symbol: token for token in SUPPORTED_TOKENS}


def get_token(symbol: Optional[str]) -> Optional[TokenDescriptor]:
    """Resolve a pair symbol (case-insensitive) to its descriptor."""

    if not symbol:
        return None
    return _BY_SYMBOL.get(symbol.strip().upper())


DEFAULT_TOKEN: TokenDescriptor = get_token(settings.default_token_symbol) or SUPPORTED_TOKENS[1]

# Source amounts are always priced through this pair, whatever the wallet network
BASE_REFERENCE_SYMBOL = "ETH/USD"


__all__ = ["BASE_REFERENCE_SYMBOL", "DEFAULT_TOKEN", "SUPPORTED_TOKENS", "TokenDescriptor", "get_token"]
