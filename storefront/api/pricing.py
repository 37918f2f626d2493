from datetime import datetime
from typing import Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from .deps import get_session
from ..core.converter import ConversionResult, parse_amount
from ..core.session import PricingSession
from ..core.tokens import SUPPORTED_TOKENS, get_token
from ..providers.wallet import BrowserWalletBridge


router = APIRouter()


class NetworkResponse(BaseModel):
    chain_id: str
    name: str
    native_symbol: str
    rpc_urls: List[str]
    block_explorer_urls: List[str]
    detected: bool = Field(description="False while the fallback network is shown")
    condition: Optional[str] = Field(default=None, description="provider_unavailable or unsupported_network")
    last_chain_id: Optional[str] = Field(default=None, description="Last chain id the wallet reported")


class ChainReport(BaseModel):
    chain_id: Optional[Union[str, int]] = Field(
        default=None,
        description="Chain id from the wallet's chainChanged event; null when no wallet is present",
    )


class TokenResponse(BaseModel):
    symbol: str
    display_name: str
    icon: str
    gradient: str
    icon_class: str
    selected: bool


class QuotesResponse(BaseModel):
    quotes: Dict[str, str] = Field(default_factory=dict)
    fetched_at: Optional[datetime] = None
    source: Optional[str] = None
    placeholder: bool = False
    loading: bool
    error: Optional[str] = None
    condition: Optional[str] = None


class ConversionResponse(BaseModel):
    source_amount: Optional[str]
    target_symbol: str
    display_value: Optional[str]
    unit_symbol: str = Field(description="Native symbol of the network the amount is labelled with")
    target_base: str
    computable: bool
    reason: Optional[str] = None


def _network_response(session: PricingSession) -> NetworkResponse:
    state = session.network_state
    network = state.network
    condition = session.network_condition
    return NetworkResponse(
        chain_id=network.chain_id,
        name=network.name,
        native_symbol=network.native_symbol,
        rpc_urls=list(network.rpc_urls),
        block_explorer_urls=list(network.block_explorer_urls),
        detected=state.detected,
        condition=condition.value if condition else None,
        last_chain_id=session.watcher.last_chain_id,
    )


def _conversion_response(result: ConversionResult) -> ConversionResponse:
    return ConversionResponse(
        source_amount=result.source_amount,
        target_symbol=result.target_symbol,
        display_value=result.display_value,
        unit_symbol=result.unit_symbol,
        target_base=result.target_base,
        computable=result.computable,
        reason=result.reason,
    )


@router.get("/network")
async def get_network(session: PricingSession = Depends(get_session)) -> NetworkResponse:
    return _network_response(session)


@router.post("/wallet/chain")
async def report_wallet_chain(
    report: ChainReport,
    session: PricingSession = Depends(get_session),
) -> NetworkResponse:
    """Forward a chainChanged event from the page and return the refreshed network."""

    provider = session.watcher.provider
    if not isinstance(provider, BrowserWalletBridge):
        raise HTTPException(status_code=409, detail="Wallet chain is not reported by the browser")

    provider.report_chain(report.chain_id)
    await session.watcher.wait_idle()
    return _network_response(session)


@router.get("/tokens")
async def list_tokens(session: PricingSession = Depends(get_session)) -> List[TokenResponse]:
    selected = session.selected_token.symbol
    return [
        TokenResponse(
            symbol=token.symbol,
            display_name=token.display_name,
            icon=token.icon,
            gradient=token.gradient,
            icon_class=token.icon_class,
            selected=token.symbol == selected,
        )
        for token in SUPPORTED_TOKENS
    ]


@router.put("/tokens/selected")
async def select_token(
    symbol: str = Query(description="Pair symbol such as BTC/USD"),
    session: PricingSession = Depends(get_session),
) -> TokenResponse:
    token = get_token(symbol)
    if token is None:
        raise HTTPException(status_code=404, detail=f"Unsupported token '{symbol}'")
    session.select_token(token)
    return TokenResponse(
        symbol=token.symbol,
        display_name=token.display_name,
        icon=token.icon,
        gradient=token.gradient,
        icon_class=token.icon_class,
        selected=True,
    )


@router.get("/quotes")
async def get_quotes(session: PricingSession = Depends(get_session)) -> QuotesResponse:
    state = session.quotes
    snapshot = state.snapshot
    return QuotesResponse(
        quotes=snapshot.as_dict() if snapshot else {},
        fetched_at=snapshot.fetched_at if snapshot else None,
        source=snapshot.source if snapshot else None,
        placeholder=snapshot.placeholder if snapshot else False,
        loading=state.loading,
        error=state.error,
        condition=state.condition.value if state.condition else None,
    )


@router.get("/convert")
async def get_conversion(
    amount: str = Query(description="Amount in the network's native currency"),
    token: Optional[str] = Query(default=None, description="Target pair; defaults to the selected token"),
    session: PricingSession = Depends(get_session),
) -> ConversionResponse:
    if parse_amount(amount) is None:
        raise HTTPException(status_code=400, detail="Amount must be a non-negative number")

    target = session.selected_token
    if token is not None:
        target = get_token(token)
        if target is None:
            raise HTTPException(status_code=404, detail=f"Unsupported token '{token}'")

    return _conversion_response(session.convert(amount, target))
