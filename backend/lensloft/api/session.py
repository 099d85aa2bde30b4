"""
Session API Endpoints
Login-time work: merging a guest device's cart and wishlist, initial reads
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lensloft.api.deps import get_cart_store, get_guest_merge, get_wishlist_store
from lensloft.core.auth import TokenUser, get_current_user
from lensloft.domain.cart import GuestCartEntry
from lensloft.services.cart_service import CartStore
from lensloft.services.guest_merge_service import GuestMergeReconciler, RequestGuestStorage
from lensloft.services.wishlist_service import WishlistStore

router = APIRouter()


class GuestMergeRequest(BaseModel):
    session_key: Optional[str] = Field(None, description="Identifies the login session; a merge runs once per key")
    cart: List[GuestCartEntry] = Field(default_factory=list, description="localStorage 'cart'")
    wishlist: List[str] = Field(default_factory=list, description="localStorage 'wishlist' product IDs")


@router.post("/merge")
async def merge_guest_data(
    payload: GuestMergeRequest,
    user: TokenUser = Depends(get_current_user),
    reconciler: GuestMergeReconciler = Depends(get_guest_merge),
):
    """
    Merge the guest cart and wishlist into the user's

    clear_local tells the client it may now wipe its local copy.
    """
    storage = RequestGuestStorage(cart=payload.cart, wishlist=payload.wishlist)
    report = await reconciler.merge(user.id, storage, session_key=payload.session_key)

    return {
        "status": "success",
        "clear_local": storage.cleared,
        "data": report.model_dump(),
    }


@router.get("")
async def load_session(
    user: TokenUser = Depends(get_current_user),
    cart: CartStore = Depends(get_cart_store),
    wishlist: WishlistStore = Depends(get_wishlist_store),
):
    data = await cart.load_session(user.id, wishlist)
    return {
        "status": "success",
        "data": {
            "cart": [item.model_dump(mode="json") for item in data["cart"]],
            "wishlist": [item.model_dump(mode="json") for item in data["wishlist"]],
        },
    }
