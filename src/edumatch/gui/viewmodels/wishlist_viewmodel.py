"""Pure Python WishlistViewModel (MVVM).

Exposes the tab-scoped read model of the wishlist page, the toggle action and
one setter per filter criterion.  Rendering code binds to the observable
properties and the ``view_changed`` signal; it never writes the lists itself.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple, Union

from edumatch.application.dtos import TabView
from edumatch.application.services.catalog_orchestrator import CatalogFetchOrchestrator
from edumatch.application.services.catalog_state import CatalogState
from edumatch.application.services.membership_store import MembershipStore
from edumatch.application.services.toggle_controller import OptimisticToggleController, ToggleOutcome
from edumatch.config import FEE_BUCKETS
from edumatch.domain.models import FeeRange, FilterCriteria, SortOption, Tab
from edumatch.domain.services.filter_pipeline import filter_entities
from edumatch.errors import EduMatchError, InvalidFilterError, PartialCatalogFailure
from edumatch.events.bus import EventBus
from edumatch.events.signal import ObservableProperty, Signal
from edumatch.events.wishlist_events import WishlistCountsUpdatedEvent, WishlistNotificationEvent
from edumatch.gui.viewmodels.base import BaseViewModel

_KIND_TABS = {tab.kind: tab for tab in Tab}
_FEE_BUCKETS = frozenset(FeeRange.parse(bucket) for bucket in FEE_BUCKETS)

LOAD_ERROR_MESSAGE = "Failed to load wishlist data"


class WishlistViewModel(BaseViewModel):
    """Wishlist page ViewModel, pure Python.

    The filtered list of the active tab is memoised on the lists revision,
    the criteria fingerprint and the tab; any change to one of them produces a
    fresh :class:`TabView` on the next read.
    """

    def __init__(
        self,
        store: MembershipStore,
        orchestrator: CatalogFetchOrchestrator,
        state: CatalogState,
        controller: OptimisticToggleController,
        event_bus: EventBus,
    ) -> None:
        super().__init__()
        self._store = store
        self._orchestrator = orchestrator
        self._state = state
        self._controller = controller
        self._criteria = FilterCriteria()
        self._memo: Optional[Tuple[tuple, TabView]] = None
        self._disposed = False
        self._logger = logging.getLogger(__name__)

        # Observable properties
        self.active_tab = ObservableProperty(Tab.PROGRAMMES)
        self.sort_order = ObservableProperty(SortOption.NEWEST)
        self.loading = ObservableProperty(False)
        self.tab_errors = ObservableProperty({})
        self.facets = ObservableProperty(state.facets)
        self.counts = ObservableProperty(store.counts)
        self.last_notification = ObservableProperty(None)

        # Signals
        self.view_changed = Signal()
        self.criteria_changed = Signal()
        self.notification = Signal()

        self._controller.bind_view(
            active_tab=lambda: self.active_tab.value,
            sort_order=lambda: self.sort_order.value,
        )
        self._state.changed.connect(self._on_lists_changed)
        self._store.snapshot_changed.connect(self._on_membership_replaced)
        self.active_tab.changed.connect(lambda *_: self.view_changed.emit())

        self.subscribe_event(event_bus, WishlistNotificationEvent, self._on_notification)
        self.subscribe_event(event_bus, WishlistCountsUpdatedEvent, self._on_counts)

    # -- read model -----------------------------------------------------------

    @property
    def criteria(self) -> FilterCriteria:
        """A copy of the active criteria; use the setters to change them."""
        return self._criteria.copy()

    @property
    def is_toggling(self) -> bool:
        return self._controller.is_busy

    def current_tab_view(self) -> TabView:
        tab = self.active_tab.value
        error = self.tab_errors.value.get(tab)
        key = (self._state.revision, self._criteria.fingerprint(), tab, error)
        if self._memo is not None and self._memo[0] == key:
            return self._memo[1]
        data = filter_entities(self._state.for_tab(tab), self._criteria, tab)
        view = TabView(tab=tab, data=tuple(data), error=error)
        self._memo = (key, view)
        return view

    def is_in_wishlist(self, post_id: str) -> bool:
        return self._store.is_member(post_id)

    # -- actions --------------------------------------------------------------

    async def load(self) -> None:
        """Fetch the membership snapshot, then the catalog lists."""
        self.loading.value = True
        try:
            try:
                with self._store.snapshot_changed.blocked():
                    await self._store.list()
            except EduMatchError as exc:
                self._logger.error("Failed to load wishlist membership: %s", exc)
                self._set_errors(Tab, str(exc) or LOAD_ERROR_MESSAGE)
                return
            await self._refresh(force=True)
        finally:
            self.loading.value = False

    async def retry(self) -> None:
        """Retry after a failed load; keeps the lists already on screen."""
        if not self._store.is_loaded:
            await self.load()
            return
        self.loading.value = True
        try:
            await self._refresh(force=True)
        finally:
            self.loading.value = False

    async def toggle(self, post_id: str) -> ToggleOutcome:
        return await self._controller.toggle(post_id)

    def set_active_tab(self, tab: Union[Tab, str]) -> None:
        self.active_tab.value = Tab.parse(tab)

    def set_sort_order(self, sort: Union[SortOption, str]) -> None:
        sort = SortOption(sort)
        if sort == self.sort_order.value:
            return
        self.sort_order.value = sort
        self.spawn(self._refresh())

    # -- filter setters -------------------------------------------------------

    def set_search_query(self, query: str) -> None:
        self._update_criteria(search_query=query or "")

    def set_disciplines(self, values: Iterable[str]) -> None:
        self._update_criteria(disciplines=set(values))

    def set_countries(self, values: Iterable[str]) -> None:
        self._update_criteria(countries=set(values))

    def set_fee_range(self, value: Union[FeeRange, str, None]) -> None:
        """Select one of the sidebar fee buckets, given as ``"min-max"``."""
        if isinstance(value, str):
            value = FeeRange.parse(value) if value else None
            if value is not None and value not in _FEE_BUCKETS:
                choices = ", ".join(FEE_BUCKETS)
                raise InvalidFilterError(f"Invalid fee range {str(value)!r}: choose one of {choices}")
        self._update_criteria(fee_range=value)

    def set_durations(self, values: Iterable[str]) -> None:
        self._update_criteria(durations=set(values))

    def set_degree_levels(self, values: Iterable[str]) -> None:
        self._update_criteria(degree_levels=set(values))

    def set_attendance(self, values: Iterable[str]) -> None:
        self._update_criteria(attendance=set(values))

    def set_show_expired(self, show: bool) -> None:
        self._update_criteria(show_expired=bool(show))

    def clear_filters(self) -> None:
        if self._criteria.is_empty():
            return
        self._criteria = FilterCriteria()
        self._criteria_updated()

    # -- internal -------------------------------------------------------------

    def _update_criteria(self, **changes) -> None:
        before = self._criteria.fingerprint()
        for name, value in changes.items():
            setattr(self._criteria, name, value)
        if self._criteria.fingerprint() != before:
            self._criteria_updated()

    def _criteria_updated(self) -> None:
        self.criteria_changed.emit(self.criteria)
        self.view_changed.emit()

    async def _refresh(self, *, force: bool = False) -> None:
        try:
            await self._orchestrator.refresh(self.sort_order.value, force=force)
        except PartialCatalogFailure as exc:
            tabs = [_KIND_TABS[kind] for kind in exc.failures if kind in _KIND_TABS]
            self._set_errors(tabs or Tab, LOAD_ERROR_MESSAGE)
        except EduMatchError as exc:
            self._logger.error("Catalog refresh failed: %s", exc)
            self._set_errors(Tab, LOAD_ERROR_MESSAGE)

    async def _sync(self, member_ids: frozenset) -> None:
        try:
            await self._orchestrator.sync_membership(member_ids, self.sort_order.value)
        except PartialCatalogFailure as exc:
            tabs = [_KIND_TABS[kind] for kind in exc.failures if kind in _KIND_TABS]
            self._set_errors(tabs or Tab, LOAD_ERROR_MESSAGE)
        except EduMatchError as exc:
            self._logger.error("Catalog sync failed: %s", exc)
            self._set_errors(Tab, LOAD_ERROR_MESSAGE)

    def _set_errors(self, tabs: Iterable[Tab], message: str) -> None:
        errors = dict(self.tab_errors.value)
        for tab in tabs:
            errors[tab] = message
        self.tab_errors.value = errors
        self.view_changed.emit()

    def _on_lists_changed(self, snapshot) -> None:
        if self._orchestrator.last_error is None and self.tab_errors.value:
            self.tab_errors.value = {}
        self.facets.value = snapshot.facets
        self.view_changed.emit()

    def _on_membership_replaced(self, member_ids: frozenset) -> None:
        self.spawn(self._sync(member_ids))

    def _on_notification(self, event: WishlistNotificationEvent) -> None:
        self.last_notification.value = event
        self.notification.emit(event)

    def _on_counts(self, event: WishlistCountsUpdatedEvent) -> None:
        self.counts.value = event.counts

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._state.changed.disconnect(self._on_lists_changed)
        self._store.snapshot_changed.disconnect(self._on_membership_replaced)
        super().dispose()


__all__ = ["LOAD_ERROR_MESSAGE", "WishlistViewModel"]
