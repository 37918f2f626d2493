from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, pricing, purchases
from .config import settings
from .core.session import PricingSession
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .providers.prices import build_price_source
from .providers.wallet import build_wallet_provider
from .services.purchases import build_purchase_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    session = PricingSession(build_wallet_provider(), build_price_source())
    app.state.pricing = session
    app.state.purchases = build_purchase_store()
    async with session:
        yield
    app.state.pricing = None


app = FastAPI(
    title="Collectibles Storefront API",
    description="Wallet network detection and token price conversion for the storefront",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(pricing.router, tags=["Pricing"])
app.include_router(purchases.router, tags=["Purchases"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Collectibles Storefront API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
