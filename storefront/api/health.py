from fastapi import APIRouter, Depends
from typing import Dict, Any

from .deps import get_session
from ..core.session import PricingSession

router = APIRouter()


@router.get("/healthz")
async def health_check(session: PricingSession = Depends(get_session)) -> Dict[str, Any]:
    """Health check covering the price source and the pricing session"""

    source = session.feed.source
    source_status = await source.health_check()
    quotes = session.quotes

    healthy = (
        session.is_running
        and source_status.get("status") == "healthy"
        and quotes.error is None
    )

    return {
        "status": "healthy" if healthy else "degraded",
        "price_source": {"name": source.name, "placeholder": source.is_placeholder, **source_status},
        "network": session.network.name,
        "network_condition": session.network_condition.value if session.network_condition else None,
        "quotes_loaded": quotes.snapshot is not None,
        "quotes_error": quotes.error,
    }
