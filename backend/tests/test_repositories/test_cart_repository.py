"""
Unit tests for the cart, wishlist, address and product repositories

The Supabase client is a MagicMock query chain (see conftest.supabase_client).
"""
import pytest

from lensloft.core.errors import NotFound
from lensloft.domain.cart import CartItem
from lensloft.repositories.address_repository import AddressRepository
from lensloft.repositories.cart_repository import CartRepository
from lensloft.repositories.product_repository import ProductRepository
from lensloft.repositories.wishlist_repository import WishlistRepository

from conftest import supabase_client

CART_ROW = {
    "id": "c1",
    "user_id": "user-1",
    "product_id": "p1",
    "quantity": 2,
    "created_at": "2026-01-01T10:00:00+00:00",
    "products": {"id": "p1", "name": "Pentax K1000", "price": 1250000, "stock_quantity": 4, "image_url": None},
}


class TestCartRepository:

    @pytest.mark.asyncio
    async def test_find_by_user_joins_products(self):
        # Arrange
        client, builder = supabase_client(data=[CART_ROW])

        # Act
        items = await CartRepository(client).find_by_user("user-1")

        # Assert
        client.table.assert_called_with("cart")
        builder.select.assert_called_with("*, products(*)")
        builder.eq.assert_called_with("user_id", "user-1")
        assert len(items) == 1
        assert isinstance(items[0], CartItem)
        assert items[0].product.name == "Pentax K1000"
        assert items[0].line_total == 2500000

    @pytest.mark.asyncio
    async def test_find_item_returns_none(self):
        client, _ = supabase_client(data=[])

        assert await CartRepository(client).find_item("user-1", "p1") is None

    @pytest.mark.asyncio
    async def test_update_quantity_of_missing_row(self):
        client, builder = supabase_client(data=[])

        with pytest.raises(NotFound):
            await CartRepository(client).update_quantity("gone", 3)

        payload = builder.update.call_args.args[0]
        assert payload["quantity"] == 3
        assert "updated_at" in payload

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_owner(self):
        client, builder = supabase_client()

        await CartRepository(client).delete("c1", "user-1")

        builder.delete.assert_called_once()
        eq_calls = [c.args for c in builder.eq.call_args_list]
        assert ("id", "c1") in eq_calls
        assert ("user_id", "user-1") in eq_calls

    @pytest.mark.asyncio
    async def test_count_uses_exact_count(self):
        client, builder = supabase_client(data=[{"id": "c1"}], count=7)

        assert await CartRepository(client).count("user-1") == 7
        assert builder.select.call_args.kwargs["count"].value == "exact"


class TestWishlistRepository:

    @pytest.mark.asyncio
    async def test_exists(self):
        client, _ = supabase_client(data=[{"id": "w1"}])

        assert await WishlistRepository(client).exists("user-1", "p1") is True

    @pytest.mark.asyncio
    async def test_newest_first(self):
        client, builder = supabase_client(data=[])

        await WishlistRepository(client).find_by_user("user-1")

        builder.order.assert_called_with("created_at", desc=True)


class TestAddressRepository:

    @pytest.mark.asyncio
    async def test_clear_default_only_touches_defaults(self):
        client, builder = supabase_client()

        await AddressRepository(client).clear_default("user-1")

        builder.update.assert_called_once_with({"is_default": False})
        eq_calls = [c.args for c in builder.eq.call_args_list]
        assert eq_calls == [("user_id", "user-1"), ("is_default", True)]

    @pytest.mark.asyncio
    async def test_insert_sets_owner(self):
        row = {"id": "a1", "user_id": "user-1", "street": "Jl. A", "city": "Medan",
               "province": "Sumatera Utara", "postal_code": "20111", "country": "Indonesia", "is_default": True}
        client, builder = supabase_client(data=[row])

        address = await AddressRepository(client).insert("user-1", {"street": "Jl. A"})

        assert builder.insert.call_args.args[0]["user_id"] == "user-1"
        assert address.is_default is True


class TestProductRepository:

    @pytest.mark.asyncio
    async def test_find_by_ids_indexes_by_id(self):
        client, builder = supabase_client(data=[
            {"id": "p1", "name": "Olympus OM-1", "price": "900000", "stock_quantity": 1, "image_url": None},
        ])

        products = await ProductRepository(client).find_by_ids(["p1", "p9"])

        builder.in_.assert_called_once_with("id", ["p1", "p9"])
        assert list(products) == ["p1"]
        assert products["p1"].stock_quantity == 1

    @pytest.mark.asyncio
    async def test_find_by_ids_empty_skips_query(self):
        client, _ = supabase_client()

        assert await ProductRepository(client).find_by_ids([]) == {}
        client.table.assert_not_called()
