"""Tests for the pure Python WishlistViewModel."""

import asyncio

import pytest

from edumatch.application.services.toggle_controller import ToggleOutcome
from edumatch.domain.models import EntityKind, FeeRange, SortOption, Tab, WishlistCounts
from edumatch.errors import InvalidFilterError, NetworkError
from edumatch.events.wishlist_events import NotificationKind, WishlistCountsUpdatedEvent
from edumatch.gui.viewmodels import WishlistViewModel
from edumatch.gui.viewmodels.wishlist_viewmodel import LOAD_ERROR_MESSAGE


@pytest.fixture
def vm(wishlist):
    view_model = WishlistViewModel(
        wishlist.store,
        wishlist.orchestrator,
        wishlist.state,
        wishlist.controller,
        wishlist.bus,
    )
    yield view_model
    view_model.dispose()


def view_ids(vm):
    return [entity.id for entity in vm.current_tab_view().data]


async def settle(vm, wishlist):
    await wishlist.controller.wait_background()
    await vm.wait_idle()


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_load_renders_member_rows(vm):
    await vm.load()

    view = vm.current_tab_view()
    assert view.tab is Tab.PROGRAMMES
    assert view_ids(vm) == ["p1"]
    assert view.total_items == 1
    assert not vm.loading.value


@pytest.mark.asyncio
async def test_load_fetches_catalog_once(vm, wishlist):
    await vm.load()
    await vm.wait_idle()

    assert wishlist.catalog_repo.refresh_count() == 1


@pytest.mark.asyncio
async def test_tab_switch(vm):
    await vm.load()

    vm.set_active_tab("scholarships")
    assert view_ids(vm) == ["s1"]

    vm.set_active_tab("unknown")
    assert vm.active_tab.value is Tab.PROGRAMMES


@pytest.mark.asyncio
async def test_view_is_memoised_until_inputs_change(vm):
    await vm.load()

    first = vm.current_tab_view()
    assert vm.current_tab_view() is first

    vm.set_search_query("nothing matches this")
    second = vm.current_tab_view()
    assert second is not first
    assert second.is_empty


@pytest.mark.asyncio
async def test_facets_follow_catalog(vm):
    await vm.load()

    assert vm.facets.value.countries == ("Germany", "France")


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fee_range_setter_accepts_bucket_string(vm):
    await vm.load()

    vm.set_fee_range("0-10000")
    assert view_ids(vm) == []

    vm.set_fee_range("10000-25000")
    assert view_ids(vm) == ["p1"]

    vm.set_fee_range(None)
    assert vm.criteria.fee_range is None


def test_invalid_fee_range_raises(vm):
    with pytest.raises(InvalidFilterError):
        vm.set_fee_range("cheap")


def test_fee_range_outside_the_sidebar_buckets_is_rejected(vm):
    with pytest.raises(InvalidFilterError, match="choose one of"):
        vm.set_fee_range("0-99")

    assert vm.criteria.fee_range is None
    vm.set_fee_range(FeeRange(0, 99))
    assert vm.criteria.fee_range == FeeRange(0, 99)


def test_setters_emit_once_per_change(vm):
    emitted = []
    vm.criteria_changed.connect(emitted.append)

    vm.set_countries(["Germany"])
    vm.set_countries(["Germany"])
    vm.set_show_expired(True)

    assert len(emitted) == 2
    assert emitted[-1].countries == {"Germany"}
    assert emitted[-1].show_expired


def test_clear_filters(vm):
    vm.set_disciplines(["Physics"])
    vm.set_degree_levels(["master"])
    vm.set_attendance(["Online"])
    vm.set_durations(["1 year"])

    vm.clear_filters()

    assert vm.criteria.is_empty()


def test_criteria_property_is_a_copy(vm):
    vm.criteria.countries.add("Germany")

    assert vm.criteria.countries == set()


# ---------------------------------------------------------------------------
# Toggle through the view model
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_removal_empties_tab_immediately(vm, wishlist):
    await vm.load()
    wishlist.membership_repo.remove_gate = asyncio.Event()

    task = asyncio.ensure_future(vm.toggle("p1"))
    await asyncio.sleep(0)
    assert vm.current_tab_view().total_items == 0
    assert vm.is_toggling

    wishlist.membership_repo.remove_gate.set()
    assert await task is ToggleOutcome.REMOVED
    await settle(vm, wishlist)

    assert vm.current_tab_view().total_items == 0
    assert vm.last_notification.value.kind is NotificationKind.REMOVED
    assert not vm.is_in_wishlist("p1")


@pytest.mark.asyncio
async def test_addition_appears_after_refetch(vm, wishlist):
    await vm.load()

    assert await vm.toggle("p2") is ToggleOutcome.ADDED
    await settle(vm, wishlist)

    assert view_ids(vm) == ["p1", "p2"]
    assert vm.last_notification.value.kind is NotificationKind.ADDED


@pytest.mark.asyncio
async def test_failed_removal_restores_row(vm, wishlist):
    await vm.load()
    wishlist.membership_repo.reject_remove = True

    assert await vm.toggle("p1") is ToggleOutcome.FAILED

    assert view_ids(vm) == ["p1"]
    assert vm.last_notification.value.kind is NotificationKind.FAILED


# ---------------------------------------------------------------------------
# Errors and retry
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_catalog_failure_is_scoped_to_tab_and_keeps_rows(vm, wishlist):
    await vm.load()
    wishlist.catalog_repo.errors[EntityKind.SCHOLARSHIP] = NetworkError("timeout")

    await vm.retry()

    assert vm.tab_errors.value == {Tab.SCHOLARSHIPS: LOAD_ERROR_MESSAGE}
    assert vm.current_tab_view().error is None
    vm.set_active_tab(Tab.SCHOLARSHIPS)
    view = vm.current_tab_view()
    assert view.error == LOAD_ERROR_MESSAGE
    assert [e.id for e in view.data] == ["s1"]


@pytest.mark.asyncio
async def test_retry_clears_errors(vm, wishlist):
    wishlist.catalog_repo.errors[EntityKind.PROGRAM] = NetworkError("timeout")
    await vm.load()
    assert Tab.PROGRAMMES in vm.tab_errors.value

    del wishlist.catalog_repo.errors[EntityKind.PROGRAM]
    await vm.retry()

    assert vm.tab_errors.value == {}
    assert view_ids(vm) == ["p1"]


@pytest.mark.asyncio
async def test_membership_failure_marks_every_tab(vm, wishlist):
    wishlist.membership_repo.list_error = NetworkError("offline")

    await vm.load()

    assert set(vm.tab_errors.value) == set(Tab)
    assert vm.current_tab_view().error == "offline"
    assert wishlist.catalog_repo.calls == []


# ---------------------------------------------------------------------------
# Sort order and events
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sort_change_refetches(vm, wishlist):
    await vm.load()
    wishlist.catalog_repo.calls.clear()

    vm.set_sort_order(SortOption.MOST_POPULAR)
    await vm.wait_idle()

    assert wishlist.catalog_repo.refresh_count() == 1
    assert wishlist.catalog_repo.calls[0][1].to_params()["sortBy"] == "most-popular"

    vm.set_sort_order("most-popular")
    await vm.wait_idle()
    assert wishlist.catalog_repo.refresh_count() == 1


def test_counts_event_updates_property(vm, wishlist):
    counts = WishlistCounts(total=3, by_category={"programs": 3})

    wishlist.bus.publish(WishlistCountsUpdatedEvent(counts=counts))

    assert vm.counts.value == counts


def test_dispose_disconnects_from_services(vm, wishlist):
    before = wishlist.state.changed.handler_count

    vm.dispose()

    assert wishlist.state.changed.handler_count == before - 1
    assert wishlist.store.snapshot_changed.handler_count == 0
