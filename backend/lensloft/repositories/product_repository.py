"""
Product Repository - read-only access to the catalog

The catalog subsystem owns the products table; the cart and checkout core
only needs fresh snapshots (price, stock) of the products it handles.
"""
from typing import Dict, Iterable, Optional

from lensloft.domain.product import ProductSnapshot
from lensloft.repositories.base import SupabaseRepository, execute

PRODUCT_COLUMNS = "id, name, price, stock_quantity, image_url"


class ProductRepository(SupabaseRepository):
    """Repository for product snapshots"""

    table_name = "products"

    async def find_by_id(self, product_id: str) -> Optional[ProductSnapshot]:
        """
        Find product by ID

        Returns:
            ProductSnapshot or None if the product does not exist
        """
        table = await self._table()
        res = await execute(
            table.select(PRODUCT_COLUMNS).eq("id", product_id).limit(1),
            "products.find_by_id",
        )
        rows = res.data or []
        return ProductSnapshot(**rows[0]) if rows else None

    async def find_by_ids(self, product_ids: Iterable[str]) -> Dict[str, ProductSnapshot]:
        """Return {product_id: ProductSnapshot} for the products that exist"""
        ids = [str(pid) for pid in product_ids]
        if not ids:
            return {}
        table = await self._table()
        res = await execute(
            table.select(PRODUCT_COLUMNS).in_("id", ids),
            "products.find_by_ids",
        )
        products = [ProductSnapshot(**row) for row in res.data or []]
        return {p.id: p for p in products}
