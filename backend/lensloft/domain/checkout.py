"""
Checkout Domain Models

States and transition results of the checkout state machine:
SelectingAddress -> SelectingPayment -> Submitting -> Confirmed
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CheckoutStep(str, Enum):
    SELECTING_ADDRESS = "selecting_address"
    SELECTING_PAYMENT = "selecting_payment"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"


class ErrorKind(str, Enum):
    RETRY = "retry"
    CONTACT_SUPPORT = "contact_support"


class CheckoutError(BaseModel):
    """User-facing checkout failure"""

    message: str
    kind: ErrorKind = ErrorKind.RETRY
    order_number: Optional[str] = Field(None, description="Set when an order header may exist")


class TransitionResult(BaseModel):
    """Outcome of a guarded transition: the step after the call, or why it was refused"""

    accepted: bool
    step: CheckoutStep
    reason: Optional[str] = None

    @classmethod
    def ok(cls, step: CheckoutStep) -> "TransitionResult":
        return cls(accepted=True, step=step)

    @classmethod
    def refused(cls, step: CheckoutStep, reason: str) -> "TransitionResult":
        return cls(accepted=False, step=step, reason=reason)
