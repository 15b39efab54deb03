"""Optimistic wishlist toggle.

One toggle at a time per controller.  A removal hides the entity from the
held lists before the network call; an addition waits for the server and then
refetches the catalog, because the entity snapshot needed to render it is
not available locally.

State machine::

    IDLE -> PROCESSING -> SETTLED_ADDED | SETTLED_REMOVED | FAILED -> IDLE
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Set

from edumatch.application.services.catalog_orchestrator import CatalogFetchOrchestrator
from edumatch.application.services.catalog_state import CatalogState
from edumatch.application.services.membership_store import MembershipStore
from edumatch.application.services.refetch_gate import RefetchGate
from edumatch.config import ADD_DEBOUNCE_MS, REMOVAL_GRACE_MS
from edumatch.domain.models import SortOption, Tab
from edumatch.errors import EduMatchError, IllegalTransitionError
from edumatch.errors.handler import ErrorHandler, ErrorSeverity
from edumatch.events.bus import EventBus
from edumatch.events.signal import Signal
from edumatch.events.wishlist_events import NotificationKind, WishlistNotificationEvent

LOGGER = logging.getLogger(__name__)


class ToggleState(Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SETTLED_ADDED = "settled_added"
    SETTLED_REMOVED = "settled_removed"
    FAILED = "failed"


_TRANSITIONS = {
    ToggleState.IDLE: {ToggleState.PROCESSING},
    ToggleState.PROCESSING: {
        ToggleState.SETTLED_ADDED,
        ToggleState.SETTLED_REMOVED,
        ToggleState.FAILED,
    },
    ToggleState.SETTLED_ADDED: {ToggleState.IDLE},
    ToggleState.SETTLED_REMOVED: {ToggleState.IDLE},
    ToggleState.FAILED: {ToggleState.IDLE},
}


class ToggleOutcome(Enum):
    REJECTED = "rejected"
    ADDED = "added"
    REMOVED = "removed"
    FAILED = "failed"


class OptimisticToggleController:
    """Run a single membership toggle from entry guard to reconciliation."""

    def __init__(
        self,
        store: MembershipStore,
        orchestrator: CatalogFetchOrchestrator,
        state: CatalogState,
        gate: RefetchGate,
        event_bus: EventBus,
        error_handler: Optional[ErrorHandler] = None,
        *,
        active_tab: Callable[[], Tab] = lambda: Tab.PROGRAMMES,
        sort_order: Callable[[], SortOption] = lambda: SortOption.NEWEST,
        removal_grace_ms: int = REMOVAL_GRACE_MS,
        add_debounce_ms: int = ADD_DEBOUNCE_MS,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._lists = state
        self._gate = gate
        self._events = event_bus
        self._errors = error_handler
        self._active_tab = active_tab
        self._sort_order = sort_order
        self._grace_sec = removal_grace_ms / 1000.0
        self._debounce_sec = add_debounce_ms / 1000.0
        self._state = ToggleState.IDLE
        self._target: Optional[str] = None
        self._background: Set[asyncio.Task] = set()
        self.state_changed = Signal()

    # -- state machine ------------------------------------------------------

    @property
    def state(self) -> ToggleState:
        return self._state

    @property
    def target(self) -> Optional[str]:
        """Post id of the toggle in flight, if any."""
        return self._target

    @property
    def is_busy(self) -> bool:
        return self._state is not ToggleState.IDLE

    def _transition(self, new_state: ToggleState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise IllegalTransitionError(
                f"Cannot move toggle from {self._state.value} to {new_state.value}"
            )
        self._state = new_state
        self.state_changed.emit(new_state, self._target)

    # -- public API ---------------------------------------------------------

    def bind_view(
        self,
        *,
        active_tab: Optional[Callable[[], Tab]] = None,
        sort_order: Optional[Callable[[], SortOption]] = None,
    ) -> None:
        """Read the notification category and refetch sort from a view."""
        if active_tab is not None:
            self._active_tab = active_tab
        if sort_order is not None:
            self._sort_order = sort_order

    async def toggle(self, post_id: str) -> ToggleOutcome:
        """Add or remove *post_id*; rejected immediately while another runs."""
        if self._state is not ToggleState.IDLE:
            LOGGER.info("[WISHLIST] toggle(%s) rejected: %s busy with %s", post_id, self._state.value, self._target)
            return ToggleOutcome.REJECTED

        self._target = post_id
        self._transition(ToggleState.PROCESSING)
        tab = Tab.parse(self._active_tab())
        try:
            if self._store.is_member(post_id):
                outcome = await self._remove(post_id, tab)
            else:
                outcome = await self._add(post_id, tab)
            return outcome
        finally:
            if self._state is ToggleState.PROCESSING:
                # Unexpected exception escaped the branch handlers.
                self._transition(ToggleState.FAILED)
            self._target = None
            self._transition(ToggleState.IDLE)

    async def wait_background(self) -> None:
        """Wait for the fire-and-forget refreshes started by past toggles."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # -- branches -------------------------------------------------------------

    async def _remove(self, post_id: str, tab: Tab) -> ToggleOutcome:
        generation = self._gate.suppress(post_id)
        self._lists.discard(post_id)
        try:
            await self._store.remove(post_id)
        except EduMatchError as exc:
            self._gate.release(generation)
            self._transition(ToggleState.FAILED)
            self._report_failure(exc, post_id, tab, "remove")
            await self._rollback(post_id)
            return ToggleOutcome.FAILED
        except asyncio.CancelledError:
            self._gate.release(generation)
            self._spawn(self._rollback(post_id))
            raise
        except Exception:
            self._gate.release(generation)
            LOGGER.exception("[WISHLIST] remove(%s) failed unexpectedly; restoring the lists", post_id)
            await self._rollback(post_id)
            raise

        self._start_background_refresh()
        self._gate.release_later(self._grace_sec, generation)
        self._transition(ToggleState.SETTLED_REMOVED)
        self._notify(NotificationKind.REMOVED, tab, post_id)
        LOGGER.info("[WISHLIST] removed %s", post_id)
        return ToggleOutcome.REMOVED

    async def _add(self, post_id: str, tab: Tab) -> ToggleOutcome:
        try:
            await self._store.add(post_id)
        except EduMatchError as exc:
            self._transition(ToggleState.FAILED)
            self._report_failure(exc, post_id, tab, "add")
            return ToggleOutcome.FAILED

        # Re-added inside its removal grace: stop hiding it.
        self._gate.unhide(post_id)
        self._start_background_refresh()
        await asyncio.sleep(self._debounce_sec)
        try:
            await self._orchestrator.refresh(self._sort_order(), force=True)
        except EduMatchError as exc:
            # The add itself succeeded; the tab shows its retryable error state.
            LOGGER.warning("[WISHLIST] catalog refetch after adding %s failed: %s", post_id, exc)
        self._transition(ToggleState.SETTLED_ADDED)
        self._notify(NotificationKind.ADDED, tab, post_id)
        LOGGER.info("[WISHLIST] added %s", post_id)
        return ToggleOutcome.ADDED

    async def _rollback(self, post_id: str) -> None:
        """Re-derive the lists from the server since the removed snapshot is gone."""
        try:
            await self._orchestrator.refresh(self._sort_order(), force=True)
        except EduMatchError as exc:
            LOGGER.warning("[WISHLIST] rollback refetch for %s failed: %s", post_id, exc)

    # -- helpers --------------------------------------------------------------

    def _start_background_refresh(self) -> None:
        self._spawn(self._store.refresh_counts())
        self._spawn(self._refresh_membership())

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh_membership(self) -> None:
        try:
            await self._store.list()
        except EduMatchError as exc:
            LOGGER.warning("[WISHLIST] background membership refresh failed: %s", exc)

    def _notify(self, kind: NotificationKind, tab: Tab, post_id: str) -> None:
        verb = "added to" if kind is NotificationKind.ADDED else "removed from"
        self._events.publish(WishlistNotificationEvent(
            kind=kind,
            category=tab,
            post_id=post_id,
            message=f"{tab.item_label} {verb} your wishlist",
            source="toggle_controller",
        ))

    def _report_failure(self, exc: Exception, post_id: str, tab: Tab, action: str) -> None:
        self._events.publish(WishlistNotificationEvent(
            kind=NotificationKind.FAILED,
            category=tab,
            post_id=post_id,
            message=f"Could not {action} {tab.item_label.lower()}: {exc}",
            source="toggle_controller",
        ))
        if self._errors is not None:
            self._errors.handle(exc, ErrorSeverity.WARNING, {"post_id": post_id, "action": action})
        else:
            LOGGER.warning("[WISHLIST] %s %s failed: %s", action, post_id, exc)
