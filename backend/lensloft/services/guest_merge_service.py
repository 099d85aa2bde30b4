"""
Guest Merge Service
Folds a guest device's cart and wishlist into the user's persisted ones at login

The device copy is cleared only after every entry was merged. If any store
call fails the device keeps its copy so the merge can run again later.
"""
import logging
import time
from typing import Callable, Dict, List, Optional, Protocol

from lensloft.core.config import settings
from lensloft.core.errors import DuplicateEntry
from lensloft.domain.cart import GuestCartEntry, MergeReport
from lensloft.services.cart_service import CartStore
from lensloft.services.wishlist_service import WishlistStore

logger = logging.getLogger(__name__)

STRATEGY_INCREMENT = "increment"
STRATEGY_MAX = "max"
STRATEGIES = (STRATEGY_INCREMENT, STRATEGY_MAX)


class GuestStorage(Protocol):
    """A guest device's local cart/wishlist"""

    def load_cart(self) -> List[GuestCartEntry]: ...

    def load_wishlist(self) -> List[str]: ...

    def clear(self) -> None: ...


class RequestGuestStorage:
    """
    GuestStorage backed by the payload a client sends to /session/merge.

    clear() only records that the client must wipe its local copy; the
    response carries that back as clear_local.
    """

    def __init__(self, cart: Optional[List[GuestCartEntry]] = None, wishlist: Optional[List[str]] = None):
        self._cart = list(cart or [])
        self._wishlist = [str(product_id) for product_id in wishlist or []]
        self.cleared = False

    def load_cart(self) -> List[GuestCartEntry]:
        return list(self._cart)

    def load_wishlist(self) -> List[str]:
        return list(self._wishlist)

    def clear(self) -> None:
        self._cart = []
        self._wishlist = []
        self.cleared = True


class MergedSessions:
    """
    Login sessions whose guest data was already merged

    Keys expire after GUEST_MERGE_SESSION_TTL_MINUTES; a login session that
    old has long since run its merge.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds is None:
            ttl_seconds = settings.GUEST_MERGE_SESSION_TTL_MINUTES * 60
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._expires: Dict[str, float] = {}

    def __contains__(self, session_key: str) -> bool:
        expires = self._expires.get(session_key)
        return expires is not None and expires > self._clock()

    def __len__(self) -> int:
        return len(self._expires)

    def add(self, session_key: str) -> None:
        now = self._clock()
        for key in [k for k, expires in self._expires.items() if expires <= now]:
            del self._expires[key]
        self._expires[session_key] = now + self.ttl_seconds


merged_sessions = MergedSessions()


class GuestMergeReconciler:
    def __init__(
        self,
        cart: CartStore,
        wishlist: WishlistStore,
        strategy: Optional[str] = None,
        sessions: Optional[MergedSessions] = None,
    ):
        strategy = strategy or settings.GUEST_MERGE_STRATEGY
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown guest merge strategy: {strategy}")
        self.cart = cart
        self.wishlist = wishlist
        self.strategy = strategy
        self.sessions = merged_sessions if sessions is None else sessions

    async def merge(self, user_id: str, storage: GuestStorage, session_key: Optional[str] = None) -> MergeReport:
        """
        Merge the guest data of `storage` into user_id's cart and wishlist.

        Runs at most once per session_key. Cart lines are merged with the
        configured strategy; wishlist entries already present are counted,
        not treated as failures.

        Raises:
            StorefrontError: a store call failed; the device copy is kept
        """
        if session_key and session_key in self.sessions:
            logger.info(f"Guest data of session {session_key} already merged, skipping")
            return MergeReport(skipped=True)

        cart_entries = storage.load_cart()
        wishlist_entries = storage.load_wishlist()
        report = MergeReport()

        for entry in cart_entries:
            if self.strategy == STRATEGY_MAX:
                await self.cart.merge_item(user_id, entry.id, entry.quantity)
            else:
                await self.cart.add_item(user_id, entry.id, entry.quantity)
            report.cart_lines_merged += 1

        for product_id in wishlist_entries:
            try:
                await self.wishlist.add_wishlist_item(user_id, product_id)
                report.wishlist_added += 1
            except DuplicateEntry:
                report.wishlist_already_present += 1

        if cart_entries or wishlist_entries:
            storage.clear()
            report.local_cleared = True
            logger.info(
                f"Merged guest data for user {user_id}: {report.cart_lines_merged} cart lines, "
                f"{report.wishlist_added} wishlist added, "
                f"{report.wishlist_already_present} already present"
            )

        if session_key:
            self.sessions.add(session_key)
        return report
