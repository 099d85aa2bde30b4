"""
Checkout API Endpoints
Drives the per-user checkout session (address -> payment -> submit)

A refused transition answers 409 with the reason, the step the session is in
and, after a failed submission, the checkout error (retry or contact_support).
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from lensloft.api.deps import (
    get_address_book,
    get_cart_store,
    get_checkout_sessions,
    get_order_pipeline,
    get_product_repository,
)
from lensloft.core.auth import TokenUser, get_current_user
from lensloft.core.config import settings
from lensloft.core.rate_limit import rate_limit
from lensloft.domain.address import AddressInput
from lensloft.domain.checkout import CheckoutStep, TransitionResult
from lensloft.repositories.product_repository import ProductRepository
from lensloft.services.address_service import AddressBook
from lensloft.services.cart_service import CartStore
from lensloft.services.checkout_service import CheckoutPipeline, CheckoutSessionRegistry
from lensloft.services.order_service import OrderPipeline

router = APIRouter()


# Request models
class SelectAddress(BaseModel):
    address_id: str = Field(..., min_length=1)


class SelectPayment(BaseModel):
    method: str = Field(..., description="credit, ewallet, bank or cod")


class SubmitOrder(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


def _session(user: TokenUser, sessions: CheckoutSessionRegistry) -> CheckoutPipeline:
    pipeline = sessions.get(user.id)
    if pipeline is None:
        raise HTTPException(status_code=404, detail="No checkout in progress")
    return pipeline


def _respond(pipeline: CheckoutPipeline, result: TransitionResult) -> dict:
    if not result.accepted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "reason": result.reason,
                "step": result.step.value,
                "error": pipeline.error.model_dump(mode="json") if pipeline.error else None,
            },
        )
    return {"status": "success", "data": pipeline.to_dict()}


@router.post("/start")
async def start_checkout(
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
    cart: CartStore = Depends(get_cart_store),
    book: AddressBook = Depends(get_address_book),
    orders: OrderPipeline = Depends(get_order_pipeline),
    products: ProductRepository = Depends(get_product_repository),
):
    """Open a fresh checkout: loads cart and addresses, preselects the default"""
    pipeline = sessions.open(
        user.id,
        lambda: CheckoutPipeline(user.id, cart, book, orders, products=products),
    )
    return _respond(pipeline, await pipeline.start())


@router.get("")
async def get_checkout(
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    return {"status": "success", "data": _session(user, sessions).to_dict()}


@router.post("/refresh")
async def refresh_checkout(
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    pipeline = _session(user, sessions)
    return _respond(pipeline, await pipeline.refresh_cart())


@router.post("/address")
async def select_address(
    payload: SelectAddress,
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    pipeline = _session(user, sessions)
    return _respond(pipeline, await pipeline.select_address(payload.address_id))


@router.post("/address/new")
async def add_new_address(
    payload: AddressInput,
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    pipeline = _session(user, sessions)
    return _respond(pipeline, await pipeline.add_new_address(payload))


@router.post("/proceed")
async def proceed_to_payment(
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    pipeline = _session(user, sessions)
    return _respond(pipeline, await pipeline.proceed_to_payment())


@router.post("/change-address")
async def change_address(
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    pipeline = _session(user, sessions)
    return _respond(pipeline, await pipeline.change_address())


@router.post("/payment")
async def select_payment_method(
    payload: SelectPayment,
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    pipeline = _session(user, sessions)
    return _respond(pipeline, await pipeline.select_payment_method(payload.method))


@router.post("/submit", dependencies=[Depends(rate_limit(settings.CHECKOUT_RATE_LIMIT))])
async def submit_order(
    payload: Optional[SubmitOrder] = None,
    user: TokenUser = Depends(get_current_user),
    sessions: CheckoutSessionRegistry = Depends(get_checkout_sessions),
):
    """
    Place the order

    On success the response carries the confirmed order and the session is
    closed; on failure it is back at payment selection with a retry or
    contact_support error.
    """
    pipeline = _session(user, sessions)
    notes = payload.notes if payload else None
    response = _respond(pipeline, await pipeline.submit(notes=notes))
    if pipeline.step == CheckoutStep.CONFIRMED:
        sessions.discard(user.id)
    return response
