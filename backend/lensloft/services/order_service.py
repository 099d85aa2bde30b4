"""
Order Service
Persists a checkout as an order header plus line items, then clears the cart

Two write paths, both "header and items or neither":

- Transactional: with DATABASE_URL configured, PostgresOrderWriter writes
  header and items in one psycopg2 transaction.
- Saga: through Supabase only. The header is staged as awaiting_items, the
  items are inserted, then the header is flipped to processing. A failure
  after staging runs a compensating delete of items and header. When the
  compensation itself fails the header stays awaiting_items and the error
  reports it as orphaned; sweep_stale_orders() removes such headers later.
"""
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from lensloft.core.config import settings
from lensloft.core.errors import (
    DuplicateEntry,
    NotFound,
    OrderCreationFailed,
    StorefrontError,
    ValidationError,
)
from lensloft.domain.address import Address
from lensloft.domain.cart import CartItem
from lensloft.domain.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from lensloft.repositories.cart_repository import CartRepository
from lensloft.repositories.order_repository import OrderRepository
from lensloft.repositories.order_transaction import PostgresOrderWriter
from lensloft.services.pricing_service import PricingEngine

logger = logging.getLogger(__name__)

BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
# Crockford base32: no I, L, O, U
BASE32_DIGITS = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """ORD-<base36 millisecond timestamp>-<4 random base32 chars>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(BASE32_DIGITS) for _ in range(4))
    return f"ORD-{_base36(now_ms)}-{suffix}"


class OrderPipeline:
    """
    Service for creating and reading orders

    Handles:
    - order number allocation with retry on collision
    - header + items persistence (transaction or saga)
    - cart clearing after a successful order
    - cleanup of staged headers left by interrupted sagas
    """

    def __init__(
        self,
        repository: Optional[OrderRepository] = None,
        cart_repository: Optional[CartRepository] = None,
        pricing: Optional[PricingEngine] = None,
        writer: Optional[PostgresOrderWriter] = None,
        number_factory=generate_order_number,
    ):
        self.repository = repository or OrderRepository()
        self.cart_repository = cart_repository or CartRepository()
        self.pricing = pricing or PricingEngine()
        if writer is None and settings.DATABASE_URL:
            writer = PostgresOrderWriter()
        self.writer = writer
        self.number_factory = number_factory

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_order(
        self,
        user_id: str,
        address: Address,
        payment_method: str,
        cart_snapshot: List[CartItem],
        notes: Optional[str] = None,
        order_number: Optional[str] = None,
    ) -> Order:
        """
        Create an order from a cart snapshot

        Args:
            user_id: Buyer
            address: Shipping address (copied onto the order)
            payment_method: One of PaymentMethod
            cart_snapshot: Cart lines with their products
            notes: Optional buyer notes
            order_number: Number allocated by the caller. Written as is, with
                no retry on collision. When omitted a number is allocated here.

        Returns:
            The persisted Order with its items

        Raises:
            ValidationError: empty cart or unknown payment method
            DuplicateEntry: the caller's order_number already exists
            OrderCreationFailed: nothing (or, if orphaned, only a header) was persisted
        """
        lines = [item for item in cart_snapshot if item.product is not None]
        if not lines:
            raise ValidationError("Cannot create an order from an empty cart")
        try:
            method = PaymentMethod(payment_method).value
        except ValueError:
            raise ValidationError(f"Unsupported payment method: {payment_method}")

        breakdown = self.pricing.price(lines)
        address_snapshot = address.snapshot()
        header = {
            "user_id": user_id,
            "payment_status": PaymentStatus.PENDING.value,
            "payment_method": method,
            "subtotal": float(breakdown.subtotal),
            "shipping_cost": float(breakdown.shipping),
            "tax": float(breakdown.tax),
            "discount": float(breakdown.discount),
            "total": float(breakdown.total),
            "currency": breakdown.currency,
            "shipping_address": address_snapshot,
            "billing_address": address_snapshot,
            "notes": notes,
        }
        items = [self._item_row(line) for line in lines]

        if order_number is not None:
            # Caller-owned number: a collision means this number was already
            # written, possibly by an earlier attempt of the same checkout
            order = await self._write({**header, "order_number": order_number}, items)
        else:
            order = None
            for attempt in range(1, settings.ORDER_NUMBER_ATTEMPTS + 1):
                candidate = self.allocate_order_number()
                try:
                    order = await self._write({**header, "order_number": candidate}, items)
                    break
                except DuplicateEntry:
                    logger.warning(f"Order number {candidate} already taken (attempt {attempt})")

            if order is None:
                raise OrderCreationFailed(
                    "Could not allocate a unique order number", stage="header",
                )

        logger.info(f"Order {order.order_number} created for user {user_id} ({len(order.items)} items)")
        await self.clear_cart(user_id, order.order_number)
        return order

    def allocate_order_number(self) -> str:
        return self.number_factory()

    async def clear_cart(self, user_id: str, order_number: str) -> None:
        """Empty the buyer's cart once order_number is persisted"""
        try:
            await self.cart_repository.delete_by_user(user_id)
        except StorefrontError as e:
            # The order stands; a stale cart is the lesser evil
            logger.error(f"Order {order_number} created but cart of user {user_id} not cleared: {e}")

    @staticmethod
    def _item_row(line: CartItem) -> Dict[str, Any]:
        product = line.product
        return {
            "product_id": line.product_id,
            "product_name": product.name,
            "quantity": line.quantity,
            "unit_price": float(product.price),
            "total_price": float(product.price * line.quantity),
            "product_snapshot": product.snapshot(),
        }

    async def _write(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> Order:
        if self.writer is not None:
            return await self.writer.write({**header, "status": OrderStatus.PROCESSING.value}, items)
        return await self._write_saga(header, items)

    async def _write_saga(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> Order:
        order_number = header["order_number"]
        try:
            staged = await self.repository.insert_order({**header, "status": OrderStatus.AWAITING_ITEMS.value})
        except DuplicateEntry:
            raise
        except StorefrontError as e:
            logger.error(f"Order {order_number}: header insert failed: {e}")
            raise OrderCreationFailed(
                f"Failed to create order: {e}", stage="header", order_number=order_number,
            ) from e

        try:
            created_items = await self.repository.insert_items(
                [{**item, "order_id": staged.id} for item in items]
            )
            order = await self.repository.update_status(staged.id, OrderStatus.PROCESSING.value)
        except StorefrontError as e:
            logger.warning(f"Order {order_number}: items failed, compensating: {e}")
            await self._compensate(staged, e)
            raise OrderCreationFailed(
                f"Failed to create order items: {e}", stage="items", order_number=order_number,
            ) from e

        order.items = created_items
        return order

    async def _compensate(self, staged: Order, cause: Exception) -> None:
        try:
            await self.repository.delete_items(staged.id)
            await self.repository.delete_order(staged.id)
        except StorefrontError as e:
            logger.error(
                f"Order {staged.order_number}: compensation failed, header left "
                f"{OrderStatus.AWAITING_ITEMS.value}: {e}"
            )
            raise OrderCreationFailed(
                f"Order {staged.order_number} could not be completed or removed: {cause}",
                stage="items",
                order_number=staged.order_number,
                orphaned=True,
            ) from e

    async def sweep_stale_orders(self, now: Optional[datetime] = None) -> int:
        """
        Delete headers staged as awaiting_items for longer than the TTL

        Returns:
            Number of headers removed
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=settings.ORDER_STAGING_TTL_MINUTES)
        stale = await self.repository.find_stale(OrderStatus.AWAITING_ITEMS.value, cutoff)

        removed = 0
        for row in stale:
            try:
                await self.repository.delete_items(row["id"])
                await self.repository.delete_order(row["id"])
            except StorefrontError as e:
                logger.error(f"Could not sweep staged order {row.get('order_number')}: {e}")
                continue
            removed += 1
            logger.info(f"Swept staged order {row.get('order_number')}")

        if removed:
            logger.warning(f"Removed {removed} orders left {OrderStatus.AWAITING_ITEMS.value}")
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_user_orders(self, user_id: str, status: Optional[str] = None) -> List[Order]:
        """Orders of a user, newest first; staged headers are never listed"""
        if status:
            return await self.repository.find_by_user(user_id, status=status)
        return await self.repository.find_by_user(user_id, exclude_status=OrderStatus.AWAITING_ITEMS.value)

    async def get_order(self, order_id: str, user_id: str) -> Order:
        order = await self.repository.find_by_id(order_id, user_id)
        if order is None or order.status == OrderStatus.AWAITING_ITEMS.value:
            raise NotFound(f"order {order_id} not found")
        return order

    async def find_by_order_number(self, order_number: str) -> Optional[Order]:
        return await self.repository.find_by_number(order_number)

    async def get_order_stats(self, user_id: str) -> Dict[str, int]:
        statuses = [
            s for s in await self.repository.statuses(user_id)
            if s != OrderStatus.AWAITING_ITEMS.value
        ]
        return {
            "total": len(statuses),
            "processing": statuses.count(OrderStatus.PROCESSING.value),
            "shipped": statuses.count(OrderStatus.SHIPPED.value),
            "delivered": statuses.count(OrderStatus.DELIVERED.value),
            "cancelled": statuses.count(OrderStatus.CANCELLED.value),
        }
