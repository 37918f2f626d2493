"""
Price conversion.

``convert`` is a pure projection of its four inputs: the same amount, snapshot,
token and network always give the same result. Missing or unusable quotes give
a result without a ``display_value`` instead of raising, so callers can render
a placeholder until the feed catches up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from .errors import Condition
from .networks import NetworkDescriptor
from .quote_feed import QuoteSnapshot
from .tokens import BASE_REFERENCE_SYMBOL, TokenDescriptor

AmountLike = Union[Decimal, int, float, str]

DISPLAY_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class ConversionResult:
    target_symbol: str
    display_value: Optional[str] = None
    source_amount: Optional[str] = None
    unit_symbol: str = ""
    reason: Optional[str] = None

    @property
    def target_base(self) -> str:
        return self.target_symbol.split("/", 1)[0]

    @property
    def computable(self) -> bool:
        return self.display_value is not None

    @property
    def condition(self) -> Optional[Condition]:
        return None if self.computable else Condition.NOT_COMPUTABLE


def parse_amount(value: AmountLike) -> Optional[Decimal]:
    """Parse a source amount; ``None`` for negative, non-finite or malformed input."""

    if isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def convert(
    source_amount: AmountLike,
    snapshot: Optional[QuoteSnapshot],
    selected_token: TokenDescriptor,
    network: NetworkDescriptor,
) -> ConversionResult:
    """Convert a source amount into the selected token.

    displayed = round(amount * base_quote / target_quote, 6), where the base
    quote is always ``BASE_REFERENCE_SYMBOL``. The network only labels the
    amount (``unit_symbol``).
    """

    amount = parse_amount(source_amount)

    def not_computable(reason: str) -> ConversionResult:
        return ConversionResult(
            target_symbol=selected_token.symbol,
            source_amount=format(amount, "f") if amount is not None else None,
            unit_symbol=network.native_symbol,
            reason=reason,
        )

    if amount is None:
        return not_computable("invalid_amount")
    if snapshot is None:
        return not_computable("quotes_unavailable")
    if snapshot.placeholder:
        return not_computable("placeholder_quotes")

    base_quote = snapshot.price(BASE_REFERENCE_SYMBOL)
    if base_quote is None:
        return not_computable("missing_base_quote")
    target_quote = snapshot.price(selected_token.symbol)
    if target_quote is None:
        return not_computable("missing_target_quote")
    if target_quote <= 0:
        return not_computable("non_positive_target_quote")

    try:
        value = (amount * base_quote / target_quote).quantize(DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Result needs more digits than the decimal context carries
        return not_computable("out_of_range")
    return ConversionResult(
        target_symbol=selected_token.symbol,
        display_value=format(value, "f"),
        source_amount=format(amount, "f"),
        unit_symbol=network.native_symbol,
    )


__all__ = ["AmountLike", "ConversionResult", "DISPLAY_QUANTUM", "convert", "parse_amount"]
