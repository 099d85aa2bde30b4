"""
Unit tests for CartStore

Runs the real service against the in-memory cart repository from conftest.
"""
import asyncio

import pytest

from lensloft.core.errors import InsufficientStock, NotFound, StoreError, TransientStoreError
from lensloft.services.cart_service import CartStore, LineLocks
from lensloft.services.wishlist_service import WishlistStore


@pytest.fixture
def cart(cart_repo, product_repo):
    return CartStore(cart_repo, product_repo, locks=LineLocks())


class TestAddItem:

    @pytest.mark.asyncio
    async def test_add_twice_increments_single_line(self, cart, cart_repo, user_id):
        """add_item(u, A, 1) then add_item(u, A, 2) gives one line with quantity 3"""
        await cart.add_item(user_id, "p1", 1)
        await cart.add_item(user_id, "p1", 2)

        assert len(cart_repo.rows) == 1
        assert cart_repo.quantities() == {"p1": 3}

    @pytest.mark.asyncio
    async def test_add_does_not_enforce_stock(self, cart, cart_repo, user_id):
        # p2 has 2 in stock
        await cart.add_item(user_id, "p2", 10)

        assert cart_repo.quantities() == {"p2": 10}

    @pytest.mark.asyncio
    async def test_concurrent_adds_never_duplicate_line(self, cart, cart_repo, user_id):
        await asyncio.gather(*(cart.add_item(user_id, "p1", 1) for _ in range(5)))

        assert len(cart_repo.rows) == 1
        assert cart_repo.quantities() == {"p1": 5}

    @pytest.mark.asyncio
    async def test_line_locks_released_after_use(self, cart_repo, product_repo, user_id):
        locks = LineLocks()
        cart = CartStore(cart_repo, product_repo, locks=locks)

        await asyncio.gather(
            *(cart.add_item(user_id, "p1", 1) for _ in range(3)),
            cart.add_item(user_id, "p2", 1),
        )

        assert len(locks) == 0
        assert cart_repo.quantities() == {"p1": 3, "p2": 1}

    @pytest.mark.asyncio
    async def test_lines_are_per_user(self, cart, cart_repo):
        await cart.add_item("alice", "p1", 1)
        await cart.add_item("bob", "p1", 1)

        assert len(cart_repo.rows) == 2


class TestAddItemWithinStock:

    @pytest.mark.asyncio
    async def test_refuses_beyond_stock(self, cart, cart_repo, user_id):
        await cart.add_item_within_stock(user_id, "p2", 2)

        with pytest.raises(InsufficientStock):
            await cart.add_item_within_stock(user_id, "p2", 1)

        assert cart_repo.quantities() == {"p2": 2}

    @pytest.mark.asyncio
    async def test_unknown_product(self, cart, user_id):
        with pytest.raises(NotFound):
            await cart.add_item_within_stock(user_id, "missing", 1)


class TestUpdateQuantity:

    @pytest.mark.asyncio
    async def test_zero_removes_line(self, cart, cart_repo, user_id):
        """update_quantity(item, 0) removes the item instead of storing 0"""
        await cart.add_item(user_id, "p1", 2)
        item = (await cart.get_cart(user_id))[0]

        result = await cart.update_quantity(item, 0)

        assert result is None
        assert cart_repo.rows == []

    @pytest.mark.asyncio
    async def test_negative_removes_line(self, cart, cart_repo, user_id):
        await cart.add_item(user_id, "p1", 2)
        item = (await cart.get_cart(user_id))[0]

        await cart.update_quantity(item, -3)

        assert cart_repo.rows == []

    @pytest.mark.asyncio
    async def test_stock_guard_refuses_before_store(self, cart, cart_repo, user_id):
        """Exceeding stock is refused without any store write"""
        await cart.add_item(user_id, "p2", 1)
        item = (await cart.get_cart(user_id))[0]
        cart_repo.calls.clear()

        with pytest.raises(InsufficientStock):
            await cart.update_quantity(item, 3)

        assert "update_quantity" not in cart_repo.calls
        assert cart_repo.quantities() == {"p2": 1}

    @pytest.mark.asyncio
    async def test_overwrites_quantity(self, cart, cart_repo, user_id):
        await cart.add_item(user_id, "p1", 1)
        item = (await cart.get_cart(user_id))[0]

        updated = await cart.update_quantity(item, 4)

        assert updated.quantity == 4
        assert updated.product is not None
        assert cart_repo.quantities() == {"p1": 4}

    @pytest.mark.asyncio
    async def test_line_of_deleted_product_cannot_grow(self, cart, cart_repo, product_repo, user_id):
        await cart.add_item(user_id, "p1", 1)
        item = (await cart.get_cart(user_id))[0]
        del product_repo.products["p1"]
        cart_repo.calls.clear()

        with pytest.raises(InsufficientStock) as exc_info:
            await cart.update_item_quantity(user_id, item.id, 3)

        assert exc_info.value.available == 0
        assert "update_quantity" not in cart_repo.calls
        assert cart_repo.quantities() == {"p1": 1}

    @pytest.mark.asyncio
    async def test_update_by_id_of_another_user(self, cart, user_id):
        await cart.add_item(user_id, "p1", 1)
        item = (await cart.get_cart(user_id))[0]

        with pytest.raises(NotFound):
            await cart.update_item_quantity("someone-else", item.id, 2)


class TestRemoveAndClear:

    @pytest.mark.asyncio
    async def test_remove_missing_item_succeeds(self, cart, cart_repo):
        cart_repo.failures["delete"] = NotFound("gone")

        await cart.remove_item("does-not-exist")

    @pytest.mark.asyncio
    async def test_remove_twice(self, cart, cart_repo, user_id):
        item = await cart.add_item(user_id, "p1", 1)

        await cart.remove_item(item.id, user_id)
        await cart.remove_item(item.id, user_id)

        assert cart_repo.rows == []

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, cart, cart_repo, user_id):
        await cart.add_item(user_id, "p1", 1)
        await cart.add_item(user_id, "p2", 1)

        await cart.clear(user_id)
        await cart.clear(user_id)

        assert cart_repo.rows == []

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self, cart, cart_repo, user_id):
        cart_repo.failures["delete_by_user"] = TransientStoreError("timeout")

        with pytest.raises(TransientStoreError):
            await cart.clear(user_id)


class TestCounts:

    @pytest.mark.asyncio
    async def test_count(self, cart, user_id):
        await cart.add_item(user_id, "p1", 3)
        await cart.add_item(user_id, "p2", 1)

        assert await cart.cart_count(user_id) == 2

    @pytest.mark.asyncio
    async def test_count_degrades_to_zero(self, cart, cart_repo, user_id):
        cart_repo.failures["count"] = StoreError("boom")

        assert await cart.cart_count(user_id) == 0


class TestLoadSession:

    @pytest.mark.asyncio
    async def test_reads_cart_and_wishlist(self, cart, wishlist_repo, user_id):
        await cart.add_item(user_id, "p1", 1)
        wishlist = WishlistStore(wishlist_repo)
        await wishlist.add_wishlist_item(user_id, "p2")

        data = await cart.load_session(user_id, wishlist)

        assert [i.product_id for i in data["cart"]] == ["p1"]
        assert [i.product_id for i in data["wishlist"]] == ["p2"]
