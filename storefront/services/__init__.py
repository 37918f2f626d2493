from .cart import Cart, CartItem, PricedCart
from .purchases import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    PurchaseRecord,
    PurchaseStore,
    build_purchase_store,
)

__all__ = [
    "Cart",
    "CartItem",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PricedCart",
    "PurchaseRecord",
    "PurchaseStore",
    "build_purchase_store",
]
