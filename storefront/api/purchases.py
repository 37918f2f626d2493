from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from .deps import get_purchase_store
from ..services.purchases import PurchaseRecord, PurchaseStore


router = APIRouter(prefix="/purchases")


class PurchaseView(BaseModel):
    id: str
    title: str
    price: str
    network_id: str
    network_name: str
    purchased_at: str
    transaction_id: str
    explorer_url: Optional[str] = None
    image_url: Optional[str] = None


def _view(record: PurchaseRecord) -> PurchaseView:
    return PurchaseView(
        id=record.id,
        title=record.title,
        price=format(record.price, "f"),
        network_id=record.network_id,
        network_name=record.network_name,
        purchased_at=record.purchased_at.isoformat(),
        transaction_id=record.transaction_id,
        explorer_url=record.explorer_url,
        image_url=record.image_url,
    )


@router.get("/{address}")
async def list_purchases(address: str, store: PurchaseStore = Depends(get_purchase_store)) -> List[PurchaseView]:
    return [_view(record) for record in await store.list(address)]


@router.post("/{address}", status_code=201)
async def record_purchase(
    address: str,
    purchase: PurchaseRecord,
    store: PurchaseStore = Depends(get_purchase_store),
) -> List[PurchaseView]:
    try:
        records = await store.record(address, purchase)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [_view(record) for record in records]
