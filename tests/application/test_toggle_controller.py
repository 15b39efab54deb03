"""Tests for the optimistic wishlist toggle."""

import asyncio
from unittest.mock import MagicMock

import pytest

from edumatch.application.services.toggle_controller import (
    OptimisticToggleController,
    ToggleOutcome,
    ToggleState,
)
from edumatch.domain.models import Tab
from edumatch.errors import IllegalTransitionError, NetworkError, ServerError
from edumatch.errors.handler import ErrorHandler, ErrorSeverity
from edumatch.events.wishlist_events import NotificationKind, WishlistNotificationEvent


async def load(wishlist):
    await wishlist.store.list()
    await wishlist.orchestrator.refresh()


def all_ids(wishlist):
    return wishlist.state.snapshot.ids()


@pytest.fixture
def notifications(wishlist):
    received = []
    wishlist.bus.subscribe(WishlistNotificationEvent, received.append)
    return received


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_removal_hides_item_before_network_resolves(wishlist):
    await load(wishlist)
    wishlist.membership_repo.remove_gate = asyncio.Event()

    task = asyncio.ensure_future(wishlist.controller.toggle("p1"))
    await asyncio.sleep(0)

    assert "p1" not in all_ids(wishlist)
    assert wishlist.controller.state is ToggleState.PROCESSING

    wishlist.membership_repo.remove_gate.set()
    assert await task is ToggleOutcome.REMOVED
    assert "p1" not in all_ids(wishlist)
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_removal_success_notifies(wishlist, notifications):
    await load(wishlist)

    outcome = await wishlist.controller.toggle("p1")

    assert outcome is ToggleOutcome.REMOVED
    assert wishlist.state.for_tab(Tab.PROGRAMMES) == ()
    assert [n.kind for n in notifications] == [NotificationKind.REMOVED]
    assert notifications[0].message == "Programme removed from your wishlist"
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_removal_success_refreshes_counts_and_membership(wishlist):
    await load(wishlist)
    wishlist.membership_repo.calls.clear()

    await wishlist.controller.toggle("p1")
    await wishlist.controller.wait_background()

    names = [call[0] for call in wishlist.membership_repo.calls]
    assert names.count("counts") == 1
    assert names.count("list") == 1
    assert wishlist.store.member_ids() == frozenset({"s1"})


@pytest.mark.asyncio
async def test_removal_failure_rolls_back(wishlist, notifications):
    await load(wishlist)
    before = wishlist.state.for_tab(Tab.PROGRAMMES)
    wishlist.membership_repo.remove_error = ServerError("Internal server error", 500)

    outcome = await wishlist.controller.toggle("p1")

    assert outcome is ToggleOutcome.FAILED
    assert wishlist.state.for_tab(Tab.PROGRAMMES) == before
    assert not wishlist.gate.is_suppressed
    assert notifications[-1].kind is NotificationKind.FAILED


@pytest.mark.asyncio
async def test_rejected_removal_rolls_back(wishlist):
    await load(wishlist)
    before = wishlist.state.snapshot
    wishlist.membership_repo.reject_remove = True

    outcome = await wishlist.controller.toggle("p1")

    assert outcome is ToggleOutcome.FAILED
    assert wishlist.state.snapshot.programs == before.programs
    assert wishlist.store.is_member("p1")


@pytest.mark.asyncio
async def test_in_flight_refetch_does_not_resurrect_removed_item(wishlist):
    await load(wishlist)
    wishlist.catalog_repo.gate = asyncio.Event()
    stale = asyncio.ensure_future(wishlist.orchestrator.refresh(force=True))
    await asyncio.sleep(0)

    outcome = await wishlist.controller.toggle("p1")
    wishlist.catalog_repo.gate.set()
    await stale

    assert outcome is ToggleOutcome.REMOVED
    assert "p1" not in all_ids(wishlist)
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_gate_reopens_after_grace(wishlist):
    await load(wishlist)

    await wishlist.controller.toggle("p1")
    assert wishlist.gate.is_suppressed

    await asyncio.sleep(0.1)
    assert not wishlist.gate.is_suppressed
    await wishlist.controller.wait_background()


# ---------------------------------------------------------------------------
# Addition
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_addition_refetches_and_shows_item(wishlist, notifications):
    await load(wishlist)

    outcome = await wishlist.controller.toggle("p2")

    assert outcome is ToggleOutcome.ADDED
    assert [e.id for e in wishlist.state.for_tab(Tab.PROGRAMMES)] == ["p1", "p2"]
    assert notifications[-1].kind is NotificationKind.ADDED
    assert notifications[-1].message == "Programme added to your wishlist"
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_addition_failure_leaves_lists_untouched(wishlist, notifications):
    await load(wishlist)
    before = wishlist.state.snapshot
    calls = len(wishlist.catalog_repo.calls)
    wishlist.membership_repo.add_error = NetworkError("offline")

    outcome = await wishlist.controller.toggle("p2")

    assert outcome is ToggleOutcome.FAILED
    assert wishlist.state.snapshot is before
    assert len(wishlist.catalog_repo.calls) == calls
    assert notifications[-1].kind is NotificationKind.FAILED


# ---------------------------------------------------------------------------
# Mutex and state machine
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_concurrent_toggles_are_rejected(wishlist):
    await load(wishlist)
    wishlist.membership_repo.remove_gate = asyncio.Event()

    first = asyncio.ensure_future(wishlist.controller.toggle("p1"))
    await asyncio.sleep(0)
    second = await wishlist.controller.toggle("s1")
    third = await wishlist.controller.toggle("p2")

    wishlist.membership_repo.remove_gate.set()
    assert await first is ToggleOutcome.REMOVED
    assert second is ToggleOutcome.REJECTED
    assert third is ToggleOutcome.REJECTED
    assert wishlist.membership_repo.mutations() == [("remove", "p1")]
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_mutex_released_after_unexpected_error(wishlist):
    await load(wishlist)
    wishlist.membership_repo.remove_error = RuntimeError("bug")

    with pytest.raises(RuntimeError):
        await wishlist.controller.toggle("p1")

    assert wishlist.controller.state is ToggleState.IDLE
    assert not wishlist.gate.is_suppressed
    assert "p1" in all_ids(wishlist)
    assert wishlist.store.is_member("p1")

    wishlist.membership_repo.remove_error = None
    assert await wishlist.controller.toggle("s1") is ToggleOutcome.REMOVED
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_state_sequence_for_removal(wishlist):
    await load(wishlist)
    states = []
    wishlist.controller.state_changed.connect(lambda state, target: states.append((state, target)))

    await wishlist.controller.toggle("p1")

    assert states == [
        (ToggleState.PROCESSING, "p1"),
        (ToggleState.SETTLED_REMOVED, "p1"),
        (ToggleState.IDLE, None),
    ]
    await wishlist.controller.wait_background()


def test_illegal_transition_raises(wishlist):
    with pytest.raises(IllegalTransitionError):
        wishlist.controller._transition(ToggleState.SETTLED_ADDED)


# ---------------------------------------------------------------------------
# Notifications and error reporting
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_notification_category_follows_active_tab(wishlist, notifications):
    await load(wishlist)
    wishlist.controller.bind_view(active_tab=lambda: Tab.SCHOLARSHIPS)

    await wishlist.controller.toggle("p1")

    assert notifications[-1].category is Tab.SCHOLARSHIPS
    assert notifications[-1].message == "Scholarship removed from your wishlist"
    await wishlist.controller.wait_background()


@pytest.mark.asyncio
async def test_failures_go_through_error_handler(wishlist):
    await load(wishlist)
    handler = MagicMock(spec=ErrorHandler)
    controller = OptimisticToggleController(
        wishlist.store,
        wishlist.orchestrator,
        wishlist.state,
        wishlist.gate,
        wishlist.bus,
        handler,
        removal_grace_ms=50,
        add_debounce_ms=0,
    )
    error = NetworkError("offline")
    wishlist.membership_repo.add_error = error

    await controller.toggle("p2")

    handler.handle.assert_called_once_with(error, ErrorSeverity.WARNING, {"post_id": "p2", "action": "add"})


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [KeyError("postId"), ValueError("bad payload")])
async def test_unexpected_removal_error_restores_lists(wishlist, error):
    await load(wishlist)
    wishlist.membership_repo.remove_error = error

    with pytest.raises(type(error)):
        await wishlist.controller.toggle("p1")

    assert "p1" in {e.id for e in wishlist.state.for_tab(Tab.PROGRAMMES)}
    assert wishlist.orchestrator.last_error is None


@pytest.mark.asyncio
async def test_readd_within_removal_grace_shows_item_again(wishlist, notifications):
    await load(wishlist)

    assert await wishlist.controller.toggle("p1") is ToggleOutcome.REMOVED
    assert wishlist.gate.is_suppressed
    assert await wishlist.controller.toggle("p1") is ToggleOutcome.ADDED

    assert "p1" in all_ids(wishlist)
    assert not wishlist.gate.is_suppressed

    # Past the grace period and every background refresh.
    await asyncio.sleep(0.2)
    await wishlist.controller.wait_background()

    assert wishlist.store.is_member("p1")
    assert "p1" in all_ids(wishlist)
    assert [n.kind for n in notifications] == [NotificationKind.REMOVED, NotificationKind.ADDED]
