"""
Wishlist API Endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lensloft.api.deps import get_wishlist_store
from lensloft.core.auth import TokenUser, get_current_user
from lensloft.core.errors import DuplicateEntry
from lensloft.services.wishlist_service import WishlistStore

router = APIRouter()


class AddWishlistItem(BaseModel):
    product_id: str = Field(..., min_length=1)


@router.get("")
async def get_wishlist(
    user: TokenUser = Depends(get_current_user),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    items = await wishlist.get_wishlist(user.id)
    return {
        "status": "success",
        "count": len(items),
        "data": [item.model_dump(mode="json") for item in items],
    }


@router.get("/count")
async def get_wishlist_count(
    user: TokenUser = Depends(get_current_user),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    return {"status": "success", "data": {"count": await wishlist.wishlist_count(user.id)}}


@router.get("/{product_id}")
async def is_in_wishlist(
    product_id: str,
    user: TokenUser = Depends(get_current_user),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    present = await wishlist.is_in_wishlist(user.id, product_id)
    return {"status": "success", "data": {"product_id": product_id, "in_wishlist": present}}


@router.post("")
async def add_wishlist_item(
    payload: AddWishlistItem,
    user: TokenUser = Depends(get_current_user),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    """
    Add a product to the wishlist

    Adding a product that is already there is not an error: the response
    says already_present instead.
    """
    try:
        item = await wishlist.add_wishlist_item(user.id, payload.product_id)
    except DuplicateEntry:
        return {"status": "success", "already_present": True, "data": None}

    return {"status": "success", "already_present": False, "data": item.model_dump(mode="json")}


@router.delete("/{product_id}")
async def remove_wishlist_item(
    product_id: str,
    user: TokenUser = Depends(get_current_user),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    await wishlist.remove_wishlist_item(user.id, product_id)
    return {"status": "success"}


@router.delete("")
async def clear_wishlist(
    user: TokenUser = Depends(get_current_user),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    await wishlist.clear_wishlist(user.id)
    return {"status": "success"}
