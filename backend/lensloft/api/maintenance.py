"""
Maintenance API Endpoints
Housekeeping triggered by a scheduler (cron, uptime monitor)

POST endpoints require the X-Maintenance-Key header matching MAINTENANCE_API_KEY.
"""
import logging

from fastapi import APIRouter, Depends, Header, HTTPException

from lensloft.api.deps import get_order_pipeline
from lensloft.core.config import settings
from lensloft.services.order_service import OrderPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


async def verify_maintenance_key(x_maintenance_key: str = Header(None, alias="X-Maintenance-Key")):
    """
    Verify the maintenance API key from the X-Maintenance-Key header.

    Without MAINTENANCE_API_KEY configured the endpoints are closed.
    """
    if not settings.MAINTENANCE_API_KEY:
        logger.warning("MAINTENANCE_API_KEY not configured - maintenance endpoints are disabled")
        raise HTTPException(status_code=503, detail="Maintenance endpoints are not configured")

    if not x_maintenance_key:
        logger.warning("Maintenance request without X-Maintenance-Key header")
        raise HTTPException(
            status_code=401,
            detail="Missing X-Maintenance-Key header. Authentication required."
        )

    if x_maintenance_key != settings.MAINTENANCE_API_KEY:
        logger.warning("Invalid maintenance key attempt")
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.post("/sweep-orders", dependencies=[Depends(verify_maintenance_key)])
async def sweep_orders(orders: OrderPipeline = Depends(get_order_pipeline)):
    """Remove order headers left awaiting_items by interrupted checkouts"""
    removed = await orders.sweep_stale_orders()
    return {
        "status": "success",
        "data": {
            "removed": removed,
            "ttl_minutes": settings.ORDER_STAGING_TTL_MINUTES,
        },
    }
