"""
Supported wallet networks.

Chains are identified the way wallets report them over EIP-1193: a lower-case
hex string such as ``"0x1"``. Helpers here accept the other spellings users
and RPC nodes produce (ints, decimal strings, upper-case or zero-padded hex)
and map them onto the canonical form before lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from ..config import settings

ChainIdLike = Union[int, str]


@dataclass(frozen=True)
class NetworkDescriptor:
    """Static metadata for one supported chain."""

    chain_id: str
    name: str
    native_symbol: str
    rpc_urls: Tuple[str, ...]
    block_explorer_urls: Tuple[str, ...]

    @property
    def numeric_chain_id(self) -> int:
        return int(self.chain_id, 16)


SUPPORTED_NETWORKS: Dict[str, NetworkDescriptor] = {
    "0x1": NetworkDescriptor(
        chain_id="0x1",
        name="Ethereum",
        native_symbol="ETH",
        rpc_urls=("https://mainnet.infura.io/v3/your-project-id",),
        block_explorer_urls=("https://etherscan.io",),
    ),
    "0xaa36a7": NetworkDescriptor(
        chain_id="0xaa36a7",
        name="Sepolia",
        native_symbol="ETH",
        rpc_urls=("https://sepolia.infura.io/v3/your-project-id",),
        block_explorer_urls=("https://sepolia.etherscan.io",),
    ),
    "0x72": NetworkDescriptor(
        chain_id="0x72",
        name="Flare Testnet Coston2",
        native_symbol="C2FLR",
        rpc_urls=("https://coston2-api.flare.network/ext/bc/C/rpc",),
        block_explorer_urls=("https://coston2-explorer.flare.network",),
    ),
}


def normalize_chain_id(value: Optional[ChainIdLike]) -> Optional[str]:
    """
    Convert a chain identifier to canonical lower-case hex.

    Examples:
        >>> normalize_chain_id(1)
        '0x1'
        >>> normalize_chain_id("0X01")
        '0x1'
        >>> normalize_chain_id("11155111")
        '0xaa36a7'
        >>> normalize_chain_id("mainnet") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return hex(value) if value > 0 else None

    text = str(value).strip().lower()
    if not text:
        return None

    try:
        if text.startswith("0x"):
            number = int(text[2:], 16)
        else:
            number = int(text, 10)
    except ValueError:
        return None

    return hex(number) if number > 0 else None


def lookup(chain_id: Optional[ChainIdLike]) -> Optional[NetworkDescriptor]:
    """Return the descriptor for a chain, or ``None`` when it is not supported."""

    canonical = normalize_chain_id(chain_id)
    if canonical is None:
        return None
    return SUPPORTED_NETWORKS.get(canonical)


def network_name(chain_id: Optional[ChainIdLike]) -> str:
    network = lookup(chain_id)
    return network.name if network else f"Network {chain_id}"


def explorer_tx_url(chain_id: Optional[ChainIdLike], tx_hash: str) -> Optional[str]:
    """Build a block explorer link for a transaction on a supported chain."""

    network = lookup(chain_id)
    if network is None or not network.block_explorer_urls or not tx_hash:
        return None
    base = network.block_explorer_urls[0].rstrip("/")
    return f"{base}/tx/{tx_hash}"


def _resolve_fallback() -> NetworkDescriptor:
    configured = lookup(settings.fallback_chain_id)
    return configured or SUPPORTED_NETWORKS["0x72"]


# Network shown before detection succeeds or when it is inconclusive
FALLBACK_NETWORK: NetworkDescriptor = _resolve_fallback()


__all__ = [
    "ChainIdLike",
    "FALLBACK_NETWORK",
    "NetworkDescriptor",
    "SUPPORTED_NETWORKS",
    "explorer_tx_url",
    "lookup",
    "network_name",
    "normalize_chain_id",
]
