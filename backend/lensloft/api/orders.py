"""
Orders API Endpoints
Order history of the signed-in user
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from lensloft.api.deps import get_order_pipeline
from lensloft.core.auth import TokenUser, get_current_user
from lensloft.services.order_service import OrderPipeline

router = APIRouter()


@router.get("")
async def get_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    user: TokenUser = Depends(get_current_user),
    orders: OrderPipeline = Depends(get_order_pipeline),
):
    """Orders with their items, newest first"""
    results = await orders.get_user_orders(user.id, status=status)
    return {
        "status": "success",
        "count": len(results),
        "data": [order.to_dict() for order in results],
    }


@router.get("/stats")
async def get_order_stats(
    user: TokenUser = Depends(get_current_user),
    orders: OrderPipeline = Depends(get_order_pipeline),
):
    """
    Order counts for the profile page

    Returns:
    - total
    - processing / shipped / delivered / cancelled
    """
    return {"status": "success", "data": await orders.get_order_stats(user.id)}


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    user: TokenUser = Depends(get_current_user),
    orders: OrderPipeline = Depends(get_order_pipeline),
):
    order = await orders.get_order(order_id, user.id)
    return {"status": "success", "data": order.to_dict()}
