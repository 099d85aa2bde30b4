"""
Checkout Service
State machine driving a user from address selection to a confirmed order

    SELECTING_ADDRESS -> SELECTING_PAYMENT -> SUBMITTING -> CONFIRMED

Every transition is a guarded coroutine returning a TransitionResult. A
refused guard never raises; store failures do. Pricing is recomputed on every
cart or address change and never reused across changes.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from lensloft.core.config import settings
from lensloft.core.errors import DuplicateEntry, NotFound, OrderCreationFailed, StorefrontError
from lensloft.domain.address import Address, AddressInput
from lensloft.domain.cart import CartItem
from lensloft.domain.checkout import CheckoutError, CheckoutStep, ErrorKind, TransitionResult
from lensloft.domain.order import Order, OrderStatus, PaymentMethod
from lensloft.domain.pricing import PriceBreakdown
from lensloft.repositories.product_repository import ProductRepository
from lensloft.services.address_service import AddressBook
from lensloft.services.cart_service import CartStore
from lensloft.services.order_service import OrderPipeline
from lensloft.services.pricing_service import PricingEngine
from lensloft.services.stock_validator import find_unfulfillable

logger = logging.getLogger(__name__)


class CheckoutPipeline:
    """
    One checkout session of one user

    Holds the cart snapshot, the loaded addresses, the selected address and
    payment method, the current pricing and, once confirmed, the order.
    """

    def __init__(
        self,
        user_id: str,
        cart: CartStore,
        addresses: AddressBook,
        orders: OrderPipeline,
        products: Optional[ProductRepository] = None,
        pricing: Optional[PricingEngine] = None,
        submit_timeout: Optional[float] = None,
    ):
        self.user_id = user_id
        self.cart = cart
        self.addresses = addresses
        self.orders = orders
        self.products = products or ProductRepository()
        self.pricing = pricing or PricingEngine()
        self.submit_timeout = submit_timeout if submit_timeout is not None else settings.ORDER_SUBMIT_TIMEOUT_SECONDS

        self.step = CheckoutStep.SELECTING_ADDRESS
        self.items: List[CartItem] = []
        self.address_options: List[Address] = []
        self.address: Optional[Address] = None
        self.payment_method: Optional[PaymentMethod] = None
        self.price: PriceBreakdown = PriceBreakdown(currency=self.pricing.policy.currency)
        self.error: Optional[CheckoutError] = None
        self.order: Optional[Order] = None
        # Allocated at the first submit, kept until the order is confirmed
        self.order_number: Optional[str] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reprice(self) -> None:
        self.price = self.pricing.price(self.items)

    def _refuse(self, reason: str) -> TransitionResult:
        return TransitionResult.refused(self.step, reason)

    def _guard(self, *allowed: CheckoutStep) -> Optional[TransitionResult]:
        if self.step == CheckoutStep.CONFIRMED:
            return self._refuse("Checkout already completed")
        if self.step not in allowed:
            return self._refuse(f"Not allowed while {self.step.value}")
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> TransitionResult:
        """Load cart and addresses concurrently, preselect the default address"""
        refused = self._guard(CheckoutStep.SELECTING_ADDRESS)
        if refused:
            return refused

        self.items, self.address_options = await asyncio.gather(
            self.cart.get_cart(self.user_id),
            self.addresses.list_addresses(self.user_id),
        )
        default = next((a for a in self.address_options if a.is_default), None)
        self.address = default or (self.address_options[0] if self.address_options else None)
        self.error = None
        self._reprice()
        return TransitionResult.ok(self.step)

    async def refresh_cart(self) -> TransitionResult:
        refused = self._guard(CheckoutStep.SELECTING_ADDRESS, CheckoutStep.SELECTING_PAYMENT)
        if refused:
            return refused
        self.items = await self.cart.get_cart(self.user_id)
        self._reprice()
        return TransitionResult.ok(self.step)

    async def select_address(self, address_id: str) -> TransitionResult:
        refused = self._guard(CheckoutStep.SELECTING_ADDRESS)
        if refused:
            return refused

        address = next((a for a in self.address_options if a.id == address_id), None)
        if address is None:
            try:
                address = await self.addresses.get_address(self.user_id, address_id)
            except NotFound:
                return self._refuse("Address not found")
            self.address_options.append(address)

        self.address = address
        self._reprice()
        return TransitionResult.ok(self.step)

    async def add_new_address(self, form: AddressInput) -> TransitionResult:
        """Save a new address through the address book and select it"""
        refused = self._guard(CheckoutStep.SELECTING_ADDRESS)
        if refused:
            return refused

        address = await self.addresses.add_address(self.user_id, form)
        if address.is_default:
            for other in self.address_options:
                other.is_default = False
        self.address_options.insert(0, address)
        self.address = address
        self._reprice()
        return TransitionResult.ok(self.step)

    async def proceed_to_payment(self) -> TransitionResult:
        refused = self._guard(CheckoutStep.SELECTING_ADDRESS)
        if refused:
            return refused
        if self.address is None:
            return self._refuse("Please select a shipping address")
        if not self.items:
            return self._refuse("Your cart is empty")

        self.step = CheckoutStep.SELECTING_PAYMENT
        return TransitionResult.ok(self.step)

    async def change_address(self) -> TransitionResult:
        refused = self._guard(CheckoutStep.SELECTING_PAYMENT)
        if refused:
            return refused
        self.step = CheckoutStep.SELECTING_ADDRESS
        return TransitionResult.ok(self.step)

    async def select_payment_method(self, method: str) -> TransitionResult:
        refused = self._guard(CheckoutStep.SELECTING_PAYMENT)
        if refused:
            return refused
        try:
            self.payment_method = PaymentMethod(method)
        except ValueError:
            return self._refuse(f"Unsupported payment method: {method}")
        return TransitionResult.ok(self.step)

    async def submit(self, notes: Optional[str] = None) -> TransitionResult:
        """
        Place the order

        Re-reads the cart, reprices and checks stock against fresh product data
        before calling OrderPipeline under a timeout. On failure the session
        returns to SELECTING_PAYMENT with a CheckoutError describing whether the
        buyer may retry or must contact support.

        The order number is allocated once per session and reused by every
        retry. A retry first looks that number up, so a write that landed
        after a timeout is confirmed instead of being placed twice.
        """
        refused = self._guard(CheckoutStep.SELECTING_PAYMENT)
        if refused:
            return refused
        if self.address is None:
            return self._refuse("Please select a shipping address")
        if self.payment_method is None:
            return self._refuse("Please select a payment method")

        # Entered before the first await so a second submit is refused
        self.step = CheckoutStep.SUBMITTING
        self.error = None
        try:
            return await self._place_order(notes)
        except asyncio.TimeoutError:
            logger.error(
                f"Order {self.order_number} for user {self.user_id} timed out after {self.submit_timeout}s"
            )
            return self._fail(
                "Order submission timed out. Check your orders before trying again",
                order_number=self.order_number,
            )
        except OrderCreationFailed as e:
            if e.retriable:
                return self._fail("Failed to place order. Please try again")
            return self._fail(
                "Your order could not be completed. Please contact support",
                kind=ErrorKind.CONTACT_SUPPORT,
                order_number=e.order_number,
            )
        except StorefrontError as e:
            logger.error(f"Order submission for user {self.user_id} failed: {e}")
            return self._fail("Failed to place order. Please try again")
        except (asyncio.CancelledError, Exception):
            # Unexpected failure: leave the session retryable and propagate
            self.step = CheckoutStep.SELECTING_PAYMENT
            raise

    async def _place_order(self, notes: Optional[str]) -> TransitionResult:
        if self.order_number is not None:
            previous = await self._previous_order()
            if previous is not None:
                return await self._confirm_previous(previous)

        self.items = await self.cart.get_cart(self.user_id)
        self._reprice()
        if not self.items:
            return self._fail("Your cart is empty")

        fresh = await self.products.find_by_ids(item.product_id for item in self.items)
        problems = find_unfulfillable(self.items, fresh)
        if problems:
            return self._fail(str(problems[0]))

        if self.order_number is None:
            self.order_number = self.orders.allocate_order_number()
        try:
            order = await asyncio.wait_for(
                self.orders.create_order(
                    self.user_id,
                    self.address,
                    self.payment_method.value,
                    self.items,
                    notes=notes,
                    order_number=self.order_number,
                ),
                timeout=self.submit_timeout,
            )
        except DuplicateEntry:
            # An earlier attempt committed this number meanwhile
            previous = await self._previous_order()
            if previous is None:
                raise
            return await self._confirm_previous(previous)
        return self._confirm(order)

    async def _previous_order(self) -> Optional[Order]:
        """The order an earlier attempt wrote under this session's number"""
        order = await self.orders.find_by_order_number(self.order_number)
        if order is not None and order.user_id != self.user_id:
            logger.warning(f"Order number {self.order_number} belongs to another user, allocating a new one")
            self.order_number = None
            return None
        return order

    async def _confirm_previous(self, order: Order) -> TransitionResult:
        if order.status == OrderStatus.AWAITING_ITEMS.value:
            return self._fail(
                "Your previous attempt is still being processed. Check your orders in a few minutes",
                order_number=order.order_number,
            )
        logger.info(f"Order {order.order_number} was placed by an earlier attempt, confirming it")
        await self.orders.clear_cart(self.user_id, order.order_number)
        return self._confirm(order)

    def _confirm(self, order: Order) -> TransitionResult:
        self.order = order
        self.items = []
        self.step = CheckoutStep.CONFIRMED
        logger.info(f"Checkout confirmed for user {self.user_id}: {order.order_number}")
        return TransitionResult.ok(self.step)

    def _fail(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.RETRY,
        order_number: Optional[str] = None,
    ) -> TransitionResult:
        self.step = CheckoutStep.SELECTING_PAYMENT
        self.error = CheckoutError(message=message, kind=kind, order_number=order_number)
        return self._refuse(message)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "items": [item.model_dump(mode="json") for item in self.items],
            "addresses": [a.model_dump(mode="json") for a in self.address_options],
            "address": self.address.model_dump(mode="json") if self.address else None,
            "payment_method": self.payment_method.value if self.payment_method else None,
            "pricing": self.price.to_dict(),
            "error": self.error.model_dump(mode="json") if self.error else None,
            "order": self.order.to_dict() if self.order else None,
        }


class CheckoutSessionRegistry:
    """
    In-process checkout sessions, one per user

    Sessions idle for longer than CHECKOUT_SESSION_TTL_MINUTES are dropped,
    except one that is mid-submission.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds is None:
            ttl_seconds = settings.CHECKOUT_SESSION_TTL_MINUTES * 60
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, CheckoutPipeline] = {}
        self._last_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expire(self, now: float) -> None:
        for user_id, seen in list(self._last_seen.items()):
            session = self._sessions[user_id]
            if now - seen > self.ttl_seconds and session.step != CheckoutStep.SUBMITTING:
                self.discard(user_id)

    def get(self, user_id: str) -> Optional[CheckoutPipeline]:
        now = self._clock()
        self._expire(now)
        session = self._sessions.get(user_id)
        if session is not None:
            self._last_seen[user_id] = now
        return session

    def open(self, user_id: str, factory: Callable[[], CheckoutPipeline]) -> CheckoutPipeline:
        """
        Start a fresh session, unless one is mid-submission (that one is
        returned so the caller's start() gets refused).

        An order number left by an unconfirmed submission carries over, so
        restarting checkout after a timeout still finds that order.
        """
        now = self._clock()
        self._expire(now)
        current = self._sessions.get(user_id)
        if current is not None and current.step == CheckoutStep.SUBMITTING:
            return current
        session = factory()
        if current is not None and current.step != CheckoutStep.CONFIRMED:
            session.order_number = current.order_number
        self._sessions[user_id] = session
        self._last_seen[user_id] = now
        return session

    def discard(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)
        self._last_seen.pop(user_id, None)


checkout_sessions = CheckoutSessionRegistry()
