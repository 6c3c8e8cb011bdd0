"""
FastAPI Application - Venue Gateway API

Provides unified REST access to spot trading venues through the adapter
layer: pair catalogue, cached market data, order submission and
cancellation, fee estimates.

Supported Exchanges:
    - HuobiHadax
    - itBit

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings, validate_configuration
from core.errors import (
    CapabilityError,
    ExchangeError,
    InsufficientFundsError,
    InvalidRequestError,
    TransportError,
    VenueError,
)
from core.exchange_interface import ExchangeInterface
from core.exchange_manager import ExchangeManager
from core.logging import logger
from core.schemas import (
    AssetType,
    CurrencyPair,
    FeeBuilder,
    FeeType,
    OrderBookSnapshot,
    OrderCancellation,
    OrderIntent,
    SubmitOrderResponse,
    TickerSnapshot,
)


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await manager.initialize_all()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await manager.shutdown_all()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Venue Gateway API",
    description=(
        "Unified REST API over spot trading venue adapters.\n\n"
        "**Supported Exchanges:** HuobiHadax, itBit\n\n"
        "## Endpoints\n"
        "- `GET /{exchange}/pairs` - Venue pair catalogue\n"
        "- `GET /{exchange}/ticker/{pair}` - Cached ticker (`?refresh=true` forces a venue call)\n"
        "- `GET /{exchange}/orderbook/{pair}` - Cached order book (`?refresh=true` forces a venue call)\n"
        "- `POST /{exchange}/orders` - Submit an order\n"
        "- `DELETE /{exchange}/orders/{order_id}` - Cancel an order\n"
        "- `GET /{exchange}/fee` - Fee estimate\n"
        "- `GET /exchanges` - List venues and capabilities\n"
        "- `GET /health` - Health check\n\n"
        "Pairs are written BASE-QUOTE (e.g. `XBT-USD`)."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

manager = ExchangeManager()  # Global exchange manager


# ============================================
# Helpers
# ============================================

def _get_enabled_exchange(name: str) -> ExchangeInterface:
    """Resolve a venue, refusing unknown and disabled ones with 404."""
    try:
        ex = manager.get_exchange(name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not ex.enabled:
        raise HTTPException(status_code=404, detail=f"{ex.name} is disabled")
    return ex


def _parse_pair(value: str) -> CurrencyPair:
    try:
        return CurrencyPair.from_string(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _status_for(exc: ExchangeError) -> int:
    if isinstance(exc, CapabilityError):
        return 501
    if isinstance(exc, InvalidRequestError):
        return 400
    if isinstance(exc, InsufficientFundsError):
        return 409
    if isinstance(exc, (TransportError, VenueError)):
        return 502
    return 500


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information and available exchanges."""
    return {
        "name": "Venue Gateway API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "exchanges": manager.list_exchanges()
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Health check - session state of every enabled venue."""
    health = await manager.health_check_all()
    enabled = {name: ok for name, ok in health.items() if name in manager.list_enabled()}
    return {
        "status": "healthy" if all(enabled.values()) else "degraded",
        "exchanges": health
    }


@app.get("/exchanges", tags=["System"])
async def list_exchanges():
    """List all registered venues with their identity and capabilities."""
    result = []
    for name in manager.list_exchanges():
        ex = manager.get_exchange(name)
        result.append({
            "name": name,
            "enabled": ex.enabled,
            "capabilities": manager.get_exchange_capabilities(name),
            "enabled_features": sorted(ex.identity.enabled_features),
            "withdraw_permissions": int(ex.get_withdraw_capabilities()),
            "enabled_pairs": ex.config.enabled_pairs,
        })
    return {"exchanges": result}


# ============================================
# Market Data Endpoints
# ============================================

@app.get("/{exchange}/pairs", response_model=List[str], tags=["Market Data"])
async def get_pairs(exchange: str):
    """
    Query the venue's pair catalogue.

    Example:
        GET /huobihadax/pairs
    """
    ex = _get_enabled_exchange(exchange)
    return await ex.fetch_tradable_pairs()


@app.get("/{exchange}/ticker/{pair}", response_model=TickerSnapshot, tags=["Market Data"])
async def get_ticker(
    exchange: str,
    pair: str,
    asset_type: AssetType = Query(default=AssetType.SPOT),
    refresh: bool = Query(default=False, description="Bypass the cache and query the venue")
):
    """
    Get the ticker for a pair.

    Examples:
        GET /itbit/ticker/XBT-USD
        GET /huobihadax/ticker/BTC-USDT?refresh=true
    """
    ex = _get_enabled_exchange(exchange)
    currency_pair = _parse_pair(pair)

    if refresh:
        return await ex.update_ticker(currency_pair, asset_type)
    return await ex.fetch_ticker(currency_pair, asset_type)


@app.get("/{exchange}/orderbook/{pair}", response_model=OrderBookSnapshot, tags=["Market Data"])
async def get_orderbook(
    exchange: str,
    pair: str,
    asset_type: AssetType = Query(default=AssetType.SPOT),
    refresh: bool = Query(default=False, description="Bypass the cache and query the venue")
):
    """
    Get the order book for a pair.

    Example:
        GET /itbit/orderbook/XBT-USD
    """
    ex = _get_enabled_exchange(exchange)
    currency_pair = _parse_pair(pair)

    if refresh:
        return await ex.update_orderbook(currency_pair, asset_type)
    return await ex.fetch_orderbook(currency_pair, asset_type)


# ============================================
# Trading Endpoints
# ============================================

@app.post("/{exchange}/orders", response_model=SubmitOrderResponse, tags=["Trading"])
async def submit_order(exchange: str, intent: OrderIntent):
    """
    Submit an order.

    A venue rejection is returned with is_order_placed=false and the venue
    message; it is not an HTTP error.

    Example:
        POST /itbit/orders
        {"pair": {"base": "XBT", "quote": "USD"}, "side": "buy",
         "order_kind": "limit", "amount": 1.0, "price": 20000}
    """
    ex = _get_enabled_exchange(exchange)
    return await ex.submit_order(
        intent.pair,
        intent.side,
        intent.order_kind,
        intent.amount,
        intent.price,
        intent.client_ref,
    )


@app.delete("/{exchange}/orders/{order_id}", tags=["Trading"])
async def cancel_order(
    exchange: str,
    order_id: str,
    wallet_address: Optional[str] = Query(default=None, description="Funding wallet (itBit)"),
    account_id: Optional[str] = Query(default=None)
):
    """
    Cancel an order.

    Example:
        DELETE /itbit/orders/13d6af57?wallet_address=b440efce
    """
    ex = _get_enabled_exchange(exchange)
    await ex.cancel_order(OrderCancellation(
        order_id=order_id,
        wallet_address=wallet_address,
        account_id=account_id,
    ))
    return {"exchange": ex.name, "order_id": order_id, "cancelled": True}


@app.get("/{exchange}/fee", tags=["Trading"])
async def get_fee(
    exchange: str,
    fee_type: FeeType = Query(default=FeeType.CRYPTO_TRADE),
    purchase_price: float = Query(default=0.0, ge=0),
    amount: float = Query(default=0.0, ge=0),
    is_maker: bool = Query(default=False),
    currency: Optional[str] = Query(default=None)
):
    """
    Estimate a fee.

    Example:
        GET /huobihadax/fee?fee_type=crypto_trade&purchase_price=20000&amount=1
    """
    ex = _get_enabled_exchange(exchange)
    fee = await ex.get_fee_by_type(FeeBuilder(
        fee_type=fee_type,
        purchase_price=purchase_price,
        amount=amount,
        is_maker=is_maker,
        currency=currency,
    ))
    return {"exchange": ex.name, "fee_type": fee_type.value, "fee": fee}


# ============================================
# Error Handlers
# ============================================

@app.exception_handler(ExchangeError)
async def exchange_error_handler(request: Request, exc: ExchangeError):
    """Map adapter errors to HTTP status codes."""
    status_code = _status_for(exc)
    if status_code >= 500 and status_code != 501:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "exchange": exc.exchange, "error": type(exc).__name__}
    )


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors."""
    detail = getattr(exc, "detail", None) or "Not found"
    return JSONResponse(status_code=404, content={"detail": detail, "path": str(request.url)})


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 errors."""
    logger.error(f"Internal error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
