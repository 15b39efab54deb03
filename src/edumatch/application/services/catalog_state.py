"""Locally held wishlist lists shared by the orchestrator and the toggle controller."""

from __future__ import annotations

import logging
from typing import Tuple

from edumatch.application.dtos import CatalogSnapshot
from edumatch.domain.models import CatalogEntity, Facets, Tab
from edumatch.events.signal import Signal

LOGGER = logging.getLogger(__name__)


class CatalogState:
    """Own the three rendered lists and bump a revision on every write.

    Only two writers exist: :meth:`publish` (catalog orchestrator) and
    :meth:`discard` (optimistic removal).  ``changed`` is emitted with the new
    snapshot after each write.
    """

    def __init__(self) -> None:
        self._snapshot = CatalogSnapshot()
        self._revision = 0
        self.changed = Signal()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def facets(self) -> Facets:
        return self._snapshot.facets

    def for_tab(self, tab: Tab) -> Tuple[CatalogEntity, ...]:
        return self._snapshot.for_tab(tab)

    def publish(self, snapshot: CatalogSnapshot) -> None:
        """Replace all three lists wholesale."""
        self._snapshot = snapshot
        self._bump()

    def discard(self, post_id: str) -> bool:
        """Drop *post_id* from every list; return whether anything was removed."""
        current = self._snapshot
        programs = tuple(e for e in current.programs if e.id != post_id)
        scholarships = tuple(e for e in current.scholarships if e.id != post_id)
        research = tuple(e for e in current.research_positions if e.id != post_id)
        removed = (
            len(programs) != len(current.programs)
            or len(scholarships) != len(current.scholarships)
            or len(research) != len(current.research_positions)
        )
        self._snapshot = CatalogSnapshot(
            programs=programs,
            scholarships=scholarships,
            research_positions=research,
            facets=current.facets,
        )
        if removed:
            LOGGER.debug("Optimistically removed %s from the wishlist lists", post_id)
        self._bump()
        return removed

    def _bump(self) -> None:
        self._revision += 1
        self.changed.emit(self._snapshot)
