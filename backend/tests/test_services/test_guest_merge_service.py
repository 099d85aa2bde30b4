"""
Unit tests for GuestMergeReconciler
"""
import pytest

from lensloft.core.errors import TransientStoreError
from lensloft.domain.cart import GuestCartEntry
from lensloft.services.cart_service import CartStore, LineLocks
from lensloft.services.guest_merge_service import (
    GuestMergeReconciler,
    MergedSessions,
    RequestGuestStorage,
)
from lensloft.services.wishlist_service import WishlistStore


def storage(cart=None, wishlist=None):
    return RequestGuestStorage(
        cart=[GuestCartEntry(id=pid, quantity=qty) for pid, qty in (cart or {}).items()],
        wishlist=wishlist or [],
    )


@pytest.fixture
def stores(cart_repo, product_repo, wishlist_repo):
    return CartStore(cart_repo, product_repo, locks=LineLocks()), WishlistStore(wishlist_repo)


def reconciler(stores, strategy="increment"):
    cart, wishlist = stores
    return GuestMergeReconciler(cart, wishlist, strategy=strategy, sessions=MergedSessions())


class TestGuestMerge:

    @pytest.mark.asyncio
    async def test_merges_cart_and_wishlist(self, stores, cart_repo, wishlist_repo, user_id):
        # Arrange: server already has p1 x1 and p2 in the wishlist
        cart, wishlist = stores
        await cart.add_item(user_id, "p1", 1)
        await wishlist.add_wishlist_item(user_id, "p2")
        local = storage(cart={"p1": 2, "p2": 1}, wishlist=["p1", "p2"])

        # Act
        report = await reconciler(stores).merge(user_id, local, session_key="login-1")

        # Assert
        assert cart_repo.quantities() == {"p1": 3, "p2": 1}
        assert sorted(wishlist_repo.product_ids()) == ["p1", "p2"]
        assert report.cart_lines_merged == 2
        assert report.wishlist_added == 1
        assert report.wishlist_already_present == 1
        assert report.local_cleared is True
        assert local.cleared is True
        assert local.load_cart() == []

    @pytest.mark.asyncio
    async def test_runs_once_per_session(self, stores, cart_repo, user_id):
        merger = reconciler(stores)

        await merger.merge(user_id, storage(cart={"p1": 1}), session_key="login-1")
        report = await merger.merge(user_id, storage(cart={"p1": 1}), session_key="login-1")

        assert report.skipped is True
        assert cart_repo.quantities() == {"p1": 1}

    @pytest.mark.asyncio
    async def test_rerun_never_duplicates_rows(self, stores, cart_repo, user_id):
        """A repeated merge may double quantities but never adds a second row"""
        merger = reconciler(stores)

        await merger.merge(user_id, storage(cart={"p1": 2}))
        await merger.merge(user_id, storage(cart={"p1": 2}))

        assert len(cart_repo.rows) == 1
        assert cart_repo.quantities() == {"p1": 4}

    @pytest.mark.asyncio
    async def test_max_strategy_is_idempotent(self, stores, cart_repo, user_id):
        cart, _ = stores
        await cart.add_item(user_id, "p1", 3)
        merger = reconciler(stores, strategy="max")

        await merger.merge(user_id, storage(cart={"p1": 2, "p2": 2}))
        await merger.merge(user_id, storage(cart={"p1": 2, "p2": 2}))

        assert cart_repo.quantities() == {"p1": 3, "p2": 2}

    @pytest.mark.asyncio
    async def test_failure_keeps_local_copy(self, stores, cart_repo, user_id):
        cart_repo.failures["insert"] = TransientStoreError("timeout")
        local = storage(cart={"p1": 1}, wishlist=["p2"])
        merger = reconciler(stores)

        with pytest.raises(TransientStoreError):
            await merger.merge(user_id, local, session_key="login-1")

        assert local.cleared is False
        assert len(local.load_cart()) == 1
        assert "login-1" not in merger.sessions

    @pytest.mark.asyncio
    async def test_nothing_local(self, stores, user_id):
        local = storage()

        report = await reconciler(stores).merge(user_id, local)

        assert report.cart_lines_merged == 0
        assert report.local_cleared is False

    def test_unknown_strategy(self, stores):
        with pytest.raises(ValueError):
            reconciler(stores, strategy="replace")


class TestMergedSessions:

    def test_keys_expire(self):
        now = [1000.0]
        sessions = MergedSessions(ttl_seconds=60, clock=lambda: now[0])
        sessions.add("login-1")

        assert "login-1" in sessions

        now[0] += 61

        assert "login-1" not in sessions

    def test_expired_keys_are_dropped_on_add(self):
        now = [1000.0]
        sessions = MergedSessions(ttl_seconds=60, clock=lambda: now[0])
        sessions.add("login-1")
        sessions.add("login-2")

        now[0] += 120
        sessions.add("login-3")

        assert len(sessions) == 1
        assert "login-3" in sessions
