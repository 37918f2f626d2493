"""
Condition taxonomy for the pricing core.

None of these conditions is fatal. Provider and transport exceptions are
raised inside the provider layer and converted to a ``Condition`` at the
NetworkWatcher / QuoteFeed boundary; only the condition value travels on to
the converter and the HTTP layer.
"""

from enum import Enum
from typing import Optional


class Condition(str, Enum):
    """State flags surfaced to the view layer."""

    PROVIDER_UNAVAILABLE = "provider_unavailable"  # No wallet provider or it failed
    UNSUPPORTED_NETWORK = "unsupported_network"    # Chain not in the registry
    QUOTE_FETCH_FAILURE = "quote_fetch_failure"    # Poll failed, last snapshot kept
    NOT_COMPUTABLE = "not_computable"              # Converter lacks usable quotes


class PricingError(Exception):
    """Base class for errors raised by wallet providers and price sources."""

    condition: Condition = Condition.PROVIDER_UNAVAILABLE

    def __init__(self, message: str, *, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class ProviderUnavailableError(PricingError):
    """The wallet provider is missing, unreachable or returned garbage."""

    condition = Condition.PROVIDER_UNAVAILABLE


class UnsupportedNetworkError(PricingError):
    """The wallet is connected to a chain outside the registry."""

    condition = Condition.UNSUPPORTED_NETWORK

    def __init__(self, chain_id: object, *, provider: Optional[str] = None):
        super().__init__(f"Unsupported network detected: {chain_id}", provider=provider)
        self.chain_id = chain_id


class QuoteFetchError(PricingError):
    """A single quote could not be fetched or parsed."""

    condition = Condition.QUOTE_FETCH_FAILURE

    def __init__(self, message: str, *, symbol: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(message, provider=provider)
        self.symbol = symbol
