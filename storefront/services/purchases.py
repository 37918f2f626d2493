"""Purchase history keyed by wallet address, kept in a small key-value store."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import settings
from ..core.networks import explorer_tx_url, network_name

logger = logging.getLogger(__name__)

PURCHASES_KEY = "purchasedNFTs"


class PurchaseRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(description="Collectible identifier")
    display_name: str = Field(default="", alias="name", description="Collectible name")
    price: Decimal = Field(ge=0, description="Price paid in the network's native currency")
    network_id: str = Field(alias="network", description="Chain id the purchase settled on")
    purchased_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="purchaseDate",
        description="Purchase timestamp",
    )
    transaction_id: str = Field(default="", alias="transactionHash", description="Transaction hash")
    image_url: Optional[str] = Field(default=None, alias="src", description="Collectible image")

    @property
    def title(self) -> str:
        return self.display_name or f"NFT #{self.id}"

    @property
    def network_name(self) -> str:
        return network_name(self.network_id)

    @property
    def explorer_url(self) -> Optional[str]:
        return explorer_tx_url(self.network_id, self.transaction_id)


class KeyValueStore(ABC):
    """Minimal async key-value store holding JSON-compatible values."""

    @abstractmethod
    async def get(self, key: str) -> Any:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Any:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)


class JsonFileKeyValueStore(KeyValueStore):
    """Stores all keys in one JSON document on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            logger.warning("Purchase store %s is not valid JSON; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _store(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    # File I/O runs off the event loop thread
    async def get(self, key: str) -> Any:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            await asyncio.to_thread(self._store, key, value)


def normalize_address(address: str) -> str:
    return (address or "").strip().lower()


class PurchaseStore:
    """Per-wallet purchase lists. Addresses are case-normalized."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def _load_all(self) -> Dict[str, List[Dict[str, Any]]]:
        data = await self._store.get(PURCHASES_KEY)
        return data if isinstance(data, dict) else {}

    async def list(self, address: str) -> List[PurchaseRecord]:
        key = normalize_address(address)
        if not key:
            return []
        records: List[PurchaseRecord] = []
        for raw in (await self._load_all()).get(key, []):
            try:
                records.append(PurchaseRecord.model_validate(raw))
            except ValueError as exc:
                logger.warning("Skipping malformed purchase for %s: %s", key, exc)
        return records

    async def record(self, address: str, purchase: PurchaseRecord) -> List[PurchaseRecord]:
        key = normalize_address(address)
        if not key:
            raise ValueError("Wallet address is required")
        everything = await self._load_all()
        entries = everything.get(key, [])
        entries.append(purchase.model_dump(mode="json", by_alias=True))
        everything[key] = entries
        await self._store.set(PURCHASES_KEY, everything)
        logger.info("Recorded purchase %s for %s", purchase.id, key)
        return await self.list(key)


def build_purchase_store() -> PurchaseStore:
    if settings.purchase_store_path:
        return PurchaseStore(JsonFileKeyValueStore(settings.purchase_store_path))
    return PurchaseStore(MemoryKeyValueStore())


__all__ = [
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PURCHASES_KEY",
    "PurchaseRecord",
    "PurchaseStore",
    "build_purchase_store",
    "normalize_address",
]
