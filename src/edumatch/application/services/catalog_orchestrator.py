"""Translate a membership snapshot into three render-ready catalog lists."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, Optional

from edumatch.application.dtos import CatalogSnapshot
from edumatch.application.services.catalog_state import CatalogState
from edumatch.application.services.membership_store import MembershipStore
from edumatch.application.services.refetch_gate import RefetchGate
from edumatch.config import CATALOG_PAGE_LIMIT
from edumatch.domain.models import CatalogPage, EntityKind, Facets, SortOption
from edumatch.domain.models.query import CatalogQuery
from edumatch.domain.repositories import ICatalogRepository
from edumatch.errors import PartialCatalogFailure
from edumatch.events.bus import EventBus
from edumatch.events.wishlist_events import CatalogRefreshedEvent, CatalogRefreshFailedEvent

LOGGER = logging.getLogger(__name__)

_KINDS = (EntityKind.PROGRAM, EntityKind.SCHOLARSHIP, EntityKind.RESEARCH)


class CatalogFetchOrchestrator:
    """Fan out one query per catalog and keep the rows the user has saved.

    Refreshes are not serialised against each other; whichever resolves last
    publishes last.  Rows are matched against the membership snapshot *at the
    time the responses arrive*, minus the ids an in-flight optimistic removal
    is hiding, so a slow response can never bring a removed item back.
    """

    def __init__(
        self,
        catalog: ICatalogRepository,
        membership: MembershipStore,
        state: CatalogState,
        gate: RefetchGate,
        event_bus: Optional[EventBus] = None,
        page_limit: int = CATALOG_PAGE_LIMIT,
    ) -> None:
        self._catalog = catalog
        self._membership = membership
        self._state = state
        self._gate = gate
        self._events = event_bus
        self._page_limit = page_limit
        self._fetched_ids: FrozenSet[str] = frozenset()
        self.last_error: Optional[Exception] = None

    @property
    def fetched_ids(self) -> FrozenSet[str]:
        """Membership ids the last successful fetch was matched against."""
        return self._fetched_ids

    def should_skip(self) -> bool:
        return self._gate.is_suppressed or self._membership.is_loading

    async def refresh(self, sort: SortOption = SortOption.NEWEST, *, force: bool = False) -> CatalogSnapshot:
        """Fetch all three catalogs and republish the wishlist lists.

        Without *force* the call is a no-op while a removal is suppressing
        refetches or a membership list is still pending.  Raises
        :class:`PartialCatalogFailure` when any catalog query fails; the lists
        published before stay untouched in that case.
        """
        if not force and self.should_skip():
            LOGGER.debug(
                "Catalog refresh skipped (suppressed=%s, membership pending=%s)",
                self._gate.is_suppressed,
                self._membership.is_loading,
            )
            return self._state.snapshot

        member_ids = self._membership.member_ids()
        if not member_ids:
            empty = CatalogSnapshot(facets=self._state.facets)
            self._fetched_ids = frozenset()
            self.last_error = None
            self._state.publish(empty)
            return empty

        query = CatalogQuery(page=1, limit=self._page_limit, sort=SortOption(sort))
        results = await asyncio.gather(
            *(self._catalog.list(kind, query) for kind in _KINDS),
            return_exceptions=True,
        )

        failures: Dict[EntityKind, BaseException] = {
            kind: result for kind, result in zip(_KINDS, results) if isinstance(result, BaseException)
        }
        if failures:
            error = PartialCatalogFailure(failures)
            self.last_error = error
            LOGGER.warning("%s; keeping the previously published lists", error)
            if self._events is not None:
                self._events.publish(CatalogRefreshFailedEvent(error=error, source="catalog_orchestrator"))
            raise error from next(iter(failures.values()))

        pages: Dict[EntityKind, CatalogPage] = dict(zip(_KINDS, results))
        # Re-read membership now: it may have moved while the queries ran.
        visible = self._membership.member_ids() - self._gate.hidden_ids
        snapshot = self._build_snapshot(pages, visible)
        # Hidden ids were not matched, so a later sync must fetch them again.
        self._fetched_ids = visible
        self.last_error = None
        self._state.publish(snapshot)
        LOGGER.info(
            "Wishlist lists refreshed: %d programmes, %d scholarships, %d research positions",
            len(snapshot.programs),
            len(snapshot.scholarships),
            len(snapshot.research_positions),
        )
        if self._events is not None:
            self._events.publish(CatalogRefreshedEvent(
                programs=len(snapshot.programs),
                scholarships=len(snapshot.scholarships),
                research_positions=len(snapshot.research_positions),
                facets=snapshot.facets,
                source="catalog_orchestrator",
            ))
        return snapshot

    async def sync_membership(self, member_ids: Iterable[str], sort: SortOption = SortOption.NEWEST) -> CatalogSnapshot:
        """React to a replaced membership snapshot.

        Ids that were not part of the last fetch need a catalog round trip;
        pure removals are applied by pruning the published lists locally.
        """
        ids = frozenset(member_ids)
        if ids - self._fetched_ids:
            return await self.refresh(sort)
        current = self._state.snapshot
        stale = current.ids() - ids
        for post_id in stale:
            self._state.discard(post_id)
        self._fetched_ids = ids
        return self._state.snapshot

    @staticmethod
    def _build_snapshot(pages: Dict[EntityKind, CatalogPage], visible: FrozenSet[str]) -> CatalogSnapshot:
        facets = Facets()
        for page in pages.values():
            facets = facets.merged(page.facets)
        return CatalogSnapshot(
            programs=tuple(e for e in pages[EntityKind.PROGRAM].data if e.id in visible),
            scholarships=tuple(e for e in pages[EntityKind.SCHOLARSHIP].data if e.id in visible),
            research_positions=tuple(e for e in pages[EntityKind.RESEARCH].data if e.id in visible),
            facets=facets,
        )
