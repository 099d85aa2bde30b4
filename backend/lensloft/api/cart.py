"""
Cart API Endpoints
Persisted cart of the signed-in user
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lensloft.api.deps import get_cart_store
from lensloft.core.auth import TokenUser, get_current_user
from lensloft.services.cart_service import CartStore
from lensloft.services.pricing_service import PricingEngine

router = APIRouter()


# Request models
class AddCartItem(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)


class UpdateCartItem(BaseModel):
    # 0 or less removes the line
    quantity: int


@router.get("")
async def get_cart(
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
):
    """
    Cart lines with their products and the price breakdown
    """
    items = await cart.get_cart(user.id)
    breakdown = PricingEngine().price(items)

    return {
        "status": "success",
        "count": len(items),
        "data": [item.model_dump(mode="json") for item in items],
        "pricing": breakdown.to_dict(),
    }


@router.get("/count")
async def get_cart_count(
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
):
    return {"status": "success", "data": {"count": await cart.cart_count(user.id)}}


@router.post("/items")
async def add_cart_item(
    payload: AddCartItem,
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
):
    """Add a product (or increase its line), refusing more than the stock"""
    item = await cart.add_item_within_stock(user.id, payload.product_id, payload.quantity)
    return {"status": "success", "data": item.model_dump(mode="json")}


@router.patch("/items/{item_id}")
async def update_cart_item(
    item_id: str,
    payload: UpdateCartItem,
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
):
    item = await cart.update_item_quantity(user.id, item_id, payload.quantity)
    return {
        "status": "success",
        "removed": item is None,
        "data": item.model_dump(mode="json") if item else None,
    }


@router.delete("/items/{item_id}")
async def remove_cart_item(
    item_id: str,
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
):
    await cart.remove_item(item_id, user.id)
    return {"status": "success"}


@router.delete("")
async def clear_cart(
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
):
    await cart.clear(user.id)
    return {"status": "success"}
