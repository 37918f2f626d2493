from fastapi import HTTPException, Request

from ..core.session import PricingSession
from ..services.purchases import PurchaseStore


def get_session(request: Request) -> PricingSession:
    session = getattr(request.app.state, "pricing", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Pricing session is not running")
    return session


def get_purchase_store(request: Request) -> PurchaseStore:
    store = getattr(request.app.state, "purchases", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Purchase store is not configured")
    return store
