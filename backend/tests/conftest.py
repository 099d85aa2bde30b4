"""
Pytest fixtures and configuration for LensLoft backend tests

In-memory fakes of the repositories let the services run their real logic
without a Supabase project. Each fake accepts injected failures per
operation name (fake.failures["insert_items"] = StoreError(...)).
"""
import itertools
from decimal import Decimal
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from lensloft.core.errors import DuplicateEntry, NotFound
from lensloft.domain.address import Address
from lensloft.domain.cart import CartItem, WishlistItem
from lensloft.domain.order import Order, OrderItem
from lensloft.domain.product import ProductSnapshot
from lensloft.services.pricing_service import PricingEngine, PricingPolicy

USER_ID = "user-1"

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


class FailureInjection:
    def __init__(self):
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def _hit(self, operation: str) -> None:
        self.calls.append(operation)
        error = self.failures.get(operation)
        if error is not None:
            raise error


class FakeProductRepository(FailureInjection):
    def __init__(self, products: Optional[List[ProductSnapshot]] = None):
        super().__init__()
        self.products = {p.id: p for p in products or []}

    def add(self, product_id: str, price, stock: int, name: Optional[str] = None) -> ProductSnapshot:
        product = ProductSnapshot(id=product_id, name=name or f"Camera {product_id}",
                                  price=Decimal(str(price)), stock_quantity=stock)
        self.products[product_id] = product
        return product

    async def find_by_id(self, product_id: str) -> Optional[ProductSnapshot]:
        self._hit("find_by_id")
        return self.products.get(product_id)

    async def find_by_ids(self, product_ids) -> Dict[str, ProductSnapshot]:
        self._hit("find_by_ids")
        return {pid: self.products[pid] for pid in product_ids if pid in self.products}


class FakeCartRepository(FailureInjection):
    def __init__(self, products: FakeProductRepository):
        super().__init__()
        self.product_repo = products
        self.rows: List[Dict[str, Any]] = []

    def _item(self, row: dict, joined: bool = True) -> CartItem:
        product = self.product_repo.products.get(row["product_id"]) if joined else None
        return CartItem(**row, product=product)

    async def find_by_user(self, user_id: str) -> List[CartItem]:
        self._hit("find_by_user")
        return [self._item(r) for r in self.rows if r["user_id"] == user_id]

    async def find_item(self, user_id: str, product_id: str) -> Optional[CartItem]:
        self._hit("find_item")
        for row in self.rows:
            if row["user_id"] == user_id and row["product_id"] == product_id:
                return self._item(row, joined=False)
        return None

    async def find_by_id(self, item_id: str, user_id: str) -> Optional[CartItem]:
        self._hit("find_by_id")
        for row in self.rows:
            if row["id"] == item_id and row["user_id"] == user_id:
                return self._item(row)
        return None

    async def insert(self, user_id: str, product_id: str, quantity: int) -> CartItem:
        self._hit("insert")
        row = {"id": next_id("cart"), "user_id": user_id, "product_id": product_id, "quantity": quantity}
        self.rows.append(row)
        return self._item(row, joined=False)

    async def update_quantity(self, item_id: str, quantity: int) -> CartItem:
        self._hit("update_quantity")
        for row in self.rows:
            if row["id"] == item_id:
                row["quantity"] = quantity
                return self._item(row, joined=False)
        raise NotFound(f"cart item {item_id} not found")

    async def delete(self, item_id: str, user_id: Optional[str] = None) -> None:
        self._hit("delete")
        self.rows = [
            r for r in self.rows
            if not (r["id"] == item_id and (user_id is None or r["user_id"] == user_id))
        ]

    async def delete_by_user(self, user_id: str) -> None:
        self._hit("delete_by_user")
        self.rows = [r for r in self.rows if r["user_id"] != user_id]

    async def count(self, user_id: str) -> int:
        self._hit("count")
        return len([r for r in self.rows if r["user_id"] == user_id])

    def quantities(self, user_id: str = USER_ID) -> Dict[str, int]:
        return {r["product_id"]: r["quantity"] for r in self.rows if r["user_id"] == user_id}


class FakeWishlistRepository(FailureInjection):
    def __init__(self):
        super().__init__()
        self.rows: List[Dict[str, Any]] = []

    async def find_by_user(self, user_id: str) -> List[WishlistItem]:
        self._hit("find_by_user")
        rows = [r for r in self.rows if r["user_id"] == user_id]
        return [WishlistItem(**r) for r in reversed(rows)]

    async def insert(self, user_id: str, product_id: str) -> WishlistItem:
        self._hit("insert")
        if any(r["user_id"] == user_id and r["product_id"] == product_id for r in self.rows):
            raise DuplicateEntry("wishlist.insert: duplicate key value violates unique constraint")
        row = {"id": next_id("wish"), "user_id": user_id, "product_id": product_id}
        self.rows.append(row)
        return WishlistItem(**row)

    async def exists(self, user_id: str, product_id: str) -> bool:
        self._hit("exists")
        return any(r["user_id"] == user_id and r["product_id"] == product_id for r in self.rows)

    async def delete(self, user_id: str, product_id: str) -> None:
        self._hit("delete")
        self.rows = [r for r in self.rows if not (r["user_id"] == user_id and r["product_id"] == product_id)]

    async def delete_by_user(self, user_id: str) -> None:
        self._hit("delete_by_user")
        self.rows = [r for r in self.rows if r["user_id"] != user_id]

    async def count(self, user_id: str) -> int:
        self._hit("count")
        return len([r for r in self.rows if r["user_id"] == user_id])

    def product_ids(self, user_id: str = USER_ID) -> List[str]:
        return [r["product_id"] for r in self.rows if r["user_id"] == user_id]


class FakeAddressRepository(FailureInjection):
    def __init__(self):
        super().__init__()
        self.rows: List[Dict[str, Any]] = []

    def _sorted(self, user_id: str) -> List[Dict[str, Any]]:
        rows = [r for r in self.rows if r["user_id"] == user_id]
        # default first, then newest first (rows are appended oldest first)
        return sorted(reversed(rows), key=lambda r: not r["is_default"])

    async def find_by_user(self, user_id: str) -> List[Address]:
        self._hit("find_by_user")
        return [Address(**r) for r in self._sorted(user_id)]

    async def find_by_id(self, address_id: str, user_id: str) -> Optional[Address]:
        self._hit("find_by_id")
        for row in self.rows:
            if row["id"] == address_id and row["user_id"] == user_id:
                return Address(**row)
        return None

    async def find_default(self, user_id: str) -> Optional[Address]:
        self._hit("find_default")
        for row in self.rows:
            if row["user_id"] == user_id and row["is_default"]:
                return Address(**row)
        return None

    async def count(self, user_id: str) -> int:
        self._hit("count")
        return len([r for r in self.rows if r["user_id"] == user_id])

    async def insert(self, user_id: str, data: Dict[str, Any]) -> Address:
        self._hit("insert")
        row = {**data, "id": next_id("addr"), "user_id": user_id}
        self.rows.append(row)
        return Address(**row)

    async def update(self, address_id: str, user_id: str, changes: Dict[str, Any]) -> Address:
        self._hit("update")
        for row in self.rows:
            if row["id"] == address_id and row["user_id"] == user_id:
                row.update(changes)
                return Address(**row)
        raise NotFound(f"address {address_id} not found")

    async def clear_default(self, user_id: str) -> None:
        self._hit("clear_default")
        for row in self.rows:
            if row["user_id"] == user_id:
                row["is_default"] = False

    async def delete(self, address_id: str, user_id: str) -> None:
        self._hit("delete")
        self.rows = [r for r in self.rows if not (r["id"] == address_id and r["user_id"] == user_id)]

    def defaults(self, user_id: str = USER_ID) -> List[str]:
        return [r["id"] for r in self.rows if r["user_id"] == user_id and r["is_default"]]


class FakeOrderRepository(FailureInjection):
    def __init__(self):
        super().__init__()
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.items: List[Dict[str, Any]] = []

    def _order(self, row: dict) -> Order:
        items = [OrderItem(**i) for i in self.items if i["order_id"] == row["id"]]
        return Order(**row, order_items=items)

    async def insert_order(self, row: Dict[str, Any]) -> Order:
        self._hit("insert_order")
        if any(o["order_number"] == row["order_number"] for o in self.orders.values()):
            raise DuplicateEntry("orders.insert_order: duplicate order_number")
        stored = {**row, "id": next_id("order")}
        self.orders[stored["id"]] = stored
        return Order(**stored)

    async def insert_items(self, rows: List[Dict[str, Any]]) -> List[OrderItem]:
        self._hit("insert_items")
        stored = [{**r, "id": next_id("item")} for r in rows]
        self.items.extend(stored)
        return [OrderItem(**r) for r in stored]

    async def update_status(self, order_id: str, status: str) -> Order:
        self._hit("update_status")
        if order_id not in self.orders:
            raise NotFound(f"order {order_id} not found")
        self.orders[order_id]["status"] = status
        return Order(**self.orders[order_id])

    async def delete_items(self, order_id: str) -> None:
        self._hit("delete_items")
        self.items = [i for i in self.items if i["order_id"] != order_id]

    async def delete_order(self, order_id: str) -> None:
        self._hit("delete_order")
        self.orders.pop(order_id, None)

    async def find_by_id(self, order_id: str, user_id: str) -> Optional[Order]:
        self._hit("find_by_id")
        row = self.orders.get(order_id)
        if row is None or row["user_id"] != user_id:
            return None
        return self._order(row)

    async def find_by_number(self, order_number: str) -> Optional[Order]:
        self._hit("find_by_number")
        for row in self.orders.values():
            if row["order_number"] == order_number:
                return self._order(row)
        return None

    async def find_by_user(self, user_id: str, status=None, exclude_status=None) -> List[Order]:
        self._hit("find_by_user")
        rows = [
            r for r in self.orders.values()
            if r["user_id"] == user_id
            and (status is None or r["status"] == status)
            and (exclude_status is None or r["status"] != exclude_status)
        ]
        return [self._order(r) for r in reversed(rows)]

    async def find_stale(self, status: str, created_before) -> List[Dict[str, Any]]:
        self._hit("find_stale")
        return [
            r for r in self.orders.values()
            if r["status"] == status and r.get("created_at") is not None and r["created_at"] < created_before
        ]

    async def statuses(self, user_id: str) -> List[str]:
        self._hit("statuses")
        return [r["status"] for r in self.orders.values() if r["user_id"] == user_id]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def product_repo():
    repo = FakeProductRepository()
    repo.add("p1", 100, stock=5, name="Leica M6")
    repo.add("p2", 250000, stock=2, name="Canon AE-1")
    return repo


@pytest.fixture
def cart_repo(product_repo):
    return FakeCartRepository(product_repo)


@pytest.fixture
def wishlist_repo():
    return FakeWishlistRepository()


@pytest.fixture
def address_repo():
    return FakeAddressRepository()


@pytest.fixture
def order_repo():
    return FakeOrderRepository()


@pytest.fixture
def pricing():
    return PricingEngine(PricingPolicy(
        free_shipping_threshold=Decimal("2000000"),
        flat_shipping_fee=Decimal("50000"),
        tax_rate=Decimal("0.11"),
        currency="IDR",
        quantum=Decimal("1"),
    ))


@pytest.fixture
def sample_address():
    return Address(
        id="addr-home",
        user_id=USER_ID,
        street="Jl. Sudirman 1",
        city="Jakarta",
        province="DKI Jakarta",
        postal_code="10220",
        country="Indonesia",
        is_default=True,
    )


def cart_line(product: ProductSnapshot, quantity: int, user_id: str = USER_ID) -> CartItem:
    return CartItem(
        id=next_id("cart"),
        user_id=user_id,
        product_id=product.id,
        quantity=quantity,
        product=product,
    )


def supabase_client(data=None, count=None, error: Optional[Exception] = None):
    """
    MagicMock standing in for the Supabase AsyncClient.

    Every builder method (select, eq, order, ...) returns the same builder;
    execute() is awaited and returns an APIResponse-like object.
    """
    builder = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "neq", "lt", "in_", "order", "limit"):
        getattr(builder, method).return_value = builder
    if error is not None:
        builder.execute = AsyncMock(side_effect=error)
    else:
        response = MagicMock()
        response.data = data if data is not None else []
        response.count = count
        builder.execute = AsyncMock(return_value=response)

    client = MagicMock()
    client.table.return_value = builder
    return client, builder


@pytest.fixture
def api(product_repo, cart_repo, wishlist_repo, address_repo, order_repo, pricing, user_id):
    """
    TestClient over the real app with every service wired to the in-memory
    repositories and authentication replaced by a fixed user.
    """
    from fastapi.testclient import TestClient

    from lensloft.api import deps
    from lensloft.core.auth import TokenUser, get_current_user
    from lensloft.main import app
    from lensloft.services.address_service import AddressBook
    from lensloft.services.cart_service import CartStore, LineLocks
    from lensloft.services.checkout_service import CheckoutSessionRegistry
    from lensloft.services.guest_merge_service import GuestMergeReconciler, MergedSessions
    from lensloft.services.order_service import OrderPipeline
    from lensloft.services.wishlist_service import WishlistStore

    locks = LineLocks()
    sessions = CheckoutSessionRegistry()
    merged = MergedSessions()

    app.dependency_overrides = {
        get_current_user: lambda: TokenUser(id=user_id),
        deps.get_cart_store: lambda: CartStore(cart_repo, product_repo, locks=locks),
        deps.get_wishlist_store: lambda: WishlistStore(wishlist_repo),
        deps.get_address_book: lambda: AddressBook(address_repo),
        deps.get_order_pipeline: lambda: OrderPipeline(order_repo, cart_repo, pricing=pricing, writer=None),
        deps.get_product_repository: lambda: product_repo,
        deps.get_checkout_sessions: lambda: sessions,
        deps.get_guest_merge: lambda: GuestMergeReconciler(
            CartStore(cart_repo, product_repo, locks=locks),
            WishlistStore(wishlist_repo),
            strategy="increment",
            sessions=merged,
        ),
    }
    with TestClient(app) as client:
        yield client
    app.dependency_overrides = {}
