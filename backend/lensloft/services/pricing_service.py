"""
Pricing Engine
Computes subtotal, shipping, tax and total from a cart snapshot

Policy constants come from configuration (lensloft.core.config), never from
code. Tax is rounded half-up to the currency quantum: for IDR a tax of
16.5 becomes 17 (half-even would give 16).
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from lensloft.core.config import settings
from lensloft.domain.cart import CartItem
from lensloft.domain.pricing import PriceBreakdown


@dataclass(frozen=True)
class PricingPolicy:
    free_shipping_threshold: Decimal
    flat_shipping_fee: Decimal
    tax_rate: Decimal
    currency: str = "IDR"
    quantum: Decimal = Decimal("1")

    @classmethod
    def from_settings(cls) -> "PricingPolicy":
        return cls(
            free_shipping_threshold=Decimal(settings.FREE_SHIPPING_THRESHOLD),
            flat_shipping_fee=Decimal(settings.FLAT_SHIPPING_FEE),
            tax_rate=Decimal(settings.TAX_RATE),
            currency=settings.CURRENCY,
            quantum=Decimal(settings.CURRENCY_QUANTUM),
        )


class PricingEngine:
    """Pure pricing over cart lines; no I/O"""

    def __init__(self, policy: Optional[PricingPolicy] = None):
        self.policy = policy or PricingPolicy.from_settings()

    def round_amount(self, amount: Decimal) -> Decimal:
        return amount.quantize(self.policy.quantum, rounding=ROUND_HALF_UP)

    def subtotal(self, items: Iterable[CartItem]) -> Decimal:
        """Sum of unit_price * quantity over lines whose product still resolves"""
        return sum(
            (item.product.price * item.quantity for item in items if item.product is not None),
            Decimal("0"),
        )

    def shipping(self, subtotal: Decimal) -> Decimal:
        # The threshold itself does not qualify: strictly greater than
        if subtotal > self.policy.free_shipping_threshold:
            return Decimal("0")
        return self.policy.flat_shipping_fee

    def tax(self, subtotal: Decimal) -> Decimal:
        return self.round_amount(subtotal * self.policy.tax_rate)

    def price(self, items: Iterable[CartItem], discount: Decimal = Decimal("0")) -> PriceBreakdown:
        """
        Price a cart snapshot

        Returns:
            PriceBreakdown with total = subtotal + shipping + tax - discount
        """
        subtotal = self.subtotal(list(items))
        shipping = self.shipping(subtotal)
        tax = self.tax(subtotal)
        total = subtotal + shipping + tax - discount

        missing = self.policy.free_shipping_threshold - subtotal
        amount_to_free_shipping = missing if shipping > 0 and missing > 0 else Decimal("0")

        return PriceBreakdown(
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            discount=discount,
            total=total,
            currency=self.policy.currency,
            amount_to_free_shipping=amount_to_free_shipping,
        )
