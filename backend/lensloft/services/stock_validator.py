"""
Stock validation

Point-in-time checks of a requested quantity against a product's stock.
Nothing here reserves or decrements stock: two buyers can both pass the check
for the last unit (stock management belongs to the seller side).
"""
from typing import Dict, Iterable, List, Optional

from lensloft.core.errors import InsufficientStock
from lensloft.domain.cart import CartItem
from lensloft.domain.product import ProductSnapshot


def can_fulfill(product: Optional[ProductSnapshot], requested_qty: int) -> bool:
    """requested_qty >= 1 and requested_qty <= product.stock_quantity"""
    if product is None:
        return False
    return 1 <= requested_qty <= product.stock_quantity


def ensure_can_fulfill(product: Optional[ProductSnapshot], requested_qty: int, product_id: str = "") -> None:
    """
    Raises:
        InsufficientStock: the quantity cannot be fulfilled
    """
    if not can_fulfill(product, requested_qty):
        available = product.stock_quantity if product is not None else 0
        raise InsufficientStock(
            product_id=product.id if product is not None else product_id,
            requested=requested_qty,
            available=available,
        )


def find_unfulfillable(
    items: Iterable[CartItem],
    products: Optional[Dict[str, ProductSnapshot]] = None,
) -> List[InsufficientStock]:
    """
    Check every cart line; fresh product data in `products` wins over the
    snapshot joined on the line.
    """
    problems = []
    for item in items:
        product = (products or {}).get(item.product_id, item.product)
        if not can_fulfill(product, item.quantity):
            problems.append(InsufficientStock(
                product_id=item.product_id,
                requested=item.quantity,
                available=product.stock_quantity if product is not None else 0,
            ))
    return problems
