"""
LensLoft - Backend API
Cart, wishlist and checkout core of the LensLoft camera storefront
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lensloft.api import addresses, cart, checkout, maintenance, orders, session, wishlist
from lensloft.core.config import settings
from lensloft.core.database import get_supabase
from lensloft.core.errors import (
    DuplicateEntry,
    InsufficientStock,
    NotFound,
    OrderCreationFailed,
    StoreError,
    TransientStoreError,
    ValidationError,
)
from lensloft.repositories.base import execute

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    debug=settings.API_DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# ============================================================================
# Error mapping
# ============================================================================

@app.exception_handler(InsufficientStock)
async def insufficient_stock_handler(request: Request, exc: InsufficientStock):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "product_id": exc.product_id,
            "requested": exc.requested,
            "available": exc.available,
        },
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateEntry)
async def duplicate_entry_handler(request: Request, exc: DuplicateEntry):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(TransientStoreError)
async def transient_store_error_handler(request: Request, exc: TransientStoreError):
    return JSONResponse(
        status_code=503,
        content={"detail": "Store temporarily unavailable, please retry"},
        headers={"Retry-After": "5"},
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(OrderCreationFailed)
async def order_creation_failed_handler(request: Request, exc: OrderCreationFailed):
    return JSONResponse(
        status_code=502,
        content={
            "detail": str(exc),
            "stage": exc.stage,
            "retriable": exc.retriable,
            "order_number": exc.order_number,
        },
    )


# ============================================================================
# Routers
# ============================================================================

app.include_router(cart.router, prefix="/api/v1/cart", tags=["Cart"])
app.include_router(wishlist.router, prefix="/api/v1/wishlist", tags=["Wishlist"])
app.include_router(session.router, prefix="/api/v1/session", tags=["Session"])
app.include_router(addresses.router, prefix="/api/v1/addresses", tags=["Addresses"])
app.include_router(checkout.router, prefix="/api/v1/checkout", tags=["Checkout"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(maintenance.router, prefix="/api/v1/maintenance", tags=["Maintenance"])


@app.get("/")
async def root():
    return {
        "message": "LensLoft API",
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
async def health():
    """Health check endpoint for monitoring - tests store connectivity"""
    start_time = time.time()

    store_status = "unknown"
    store_latency_ms = None
    store_error = None

    try:
        client = await get_supabase()
        store_start = time.time()
        await execute(client.table("products").select("id").limit(1), "health.ping")
        store_latency_ms = round((time.time() - store_start) * 1000, 2)
        store_status = "connected"
    except Exception as e:
        store_status = "disconnected"
        store_error = str(e)
        logger.warning(f"Health check: store unreachable: {e}")

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "service": "lensloft-api",
        "version": settings.API_VERSION,
        "store": {
            "status": store_status,
            "latency_ms": store_latency_ms,
            "error": store_error,
            "transactional_orders": bool(settings.DATABASE_URL),
        },
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
    }
