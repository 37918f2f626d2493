"""Cart totals priced through the pricing session."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from ..core.converter import ConversionResult
from ..core.session import PricingSession, TokenLike


@dataclass(frozen=True)
class CartItem:
    id: str
    name: str
    price: Decimal
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        price = Decimal(str(self.price))
        if not price.is_finite() or price < 0:
            raise ValueError(f"Cart item price must be a non-negative amount, got {self.price!r}")
        object.__setattr__(self, "price", price)


@dataclass(frozen=True)
class PricedLine:
    item: CartItem
    conversion: ConversionResult


@dataclass(frozen=True)
class PricedCart:
    lines: List[PricedLine]
    total: Decimal
    total_conversion: ConversionResult


@dataclass
class Cart:
    items: List[CartItem] = field(default_factory=list)

    def add(self, item: CartItem) -> None:
        self.items.append(item)

    def remove(self, item_id: str) -> bool:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                del self.items[index]
                return True
        return False

    def clear(self) -> None:
        self.items.clear()

    @property
    def total(self) -> Decimal:
        return sum((item.price for item in self.items), Decimal("0"))

    def __len__(self) -> int:
        return len(self.items)

    def priced(self, session: PricingSession, token: Optional[TokenLike] = None) -> PricedCart:
        lines = [PricedLine(item=item, conversion=session.convert(item.price, token)) for item in self.items]
        total = self.total
        return PricedCart(lines=lines, total=total, total_conversion=session.convert(total, token))


__all__ = ["Cart", "CartItem", "PricedCart", "PricedLine"]
