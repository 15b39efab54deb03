"""Single source of truth for "is post P in the user's wishlist"."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

from edumatch.config import ACTIVE_MEMBERSHIP_STATUS, MEMBERSHIP_PAGE_LIMIT, MEMBERSHIP_STATUSES
from edumatch.domain.models import MembershipRecord, MutationAck, PageMeta, WishlistCounts
from edumatch.domain.models.query import MembershipQuery
from edumatch.domain.repositories import IMembershipRepository
from edumatch.errors import EduMatchError, InvalidStatusError, ServerError
from edumatch.events.bus import EventBus
from edumatch.events.signal import Signal
from edumatch.events.wishlist_events import MembershipChangedEvent, WishlistCountsUpdatedEvent

LOGGER = logging.getLogger(__name__)


def _check_status(status: int) -> int:
    if status not in MEMBERSHIP_STATUSES:
        raise InvalidStatusError(f"Invalid wishlist status {status!r}; expected 0 or 1")
    return int(status)


class MembershipStore:
    """Hold the last confirmed membership snapshot.

    ``list`` replaces the snapshot; a failed ``list`` keeps the previous one
    (stale-but-available).  Every mutation applies its change locally only
    after the server acknowledged it.

    ``snapshot_changed`` fires when ``list`` replaces the snapshot and after
    status updates and bulk operations.  Single ``add``/``remove`` calls are
    announced on the event bus only, since the toggle controller drives their
    refetch.
    """

    def __init__(
        self,
        repository: IMembershipRepository,
        event_bus: Optional[EventBus] = None,
        page_limit: int = MEMBERSHIP_PAGE_LIMIT,
    ) -> None:
        self._repo = repository
        self._events = event_bus
        self._page_limit = page_limit
        self._records: Dict[str, MembershipRecord] = {}
        self._meta = PageMeta()
        self._pending_lists = 0
        self._loaded = False
        self._counts: Optional[WishlistCounts] = None
        self.snapshot_changed = Signal()

    # -- queries ------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._pending_lists > 0

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def counts(self) -> Optional[WishlistCounts]:
        return self._counts

    @property
    def page_meta(self) -> PageMeta:
        """Pagination block of the last successful ``list``."""
        return self._meta

    @property
    def records(self) -> List[MembershipRecord]:
        return list(self._records.values())

    def member_ids(self) -> frozenset:
        return frozenset(self._records)

    def is_member(self, post_id: str) -> bool:
        return post_id in self._records

    def default_query(self) -> MembershipQuery:
        return MembershipQuery(page=1, limit=self._page_limit, status=ACTIVE_MEMBERSHIP_STATUS)

    # -- remote operations ----------------------------------------------------

    async def list(self, query: Optional[MembershipQuery] = None) -> List[MembershipRecord]:
        """Fetch the authoritative snapshot and replace the local one."""
        query = query or self.default_query()
        self._pending_lists += 1
        try:
            page = await self._repo.list(query)
        except EduMatchError as exc:
            LOGGER.warning("Membership list failed, keeping %d cached records: %s", len(self._records), exc)
            raise
        finally:
            self._pending_lists -= 1

        self._records = {
            record.post_id: record for record in page.records if record.is_active
        }
        self._meta = page.meta
        self._loaded = True
        if page.meta.has_more:
            LOGGER.warning(
                "Membership list truncated at page %d of %d (%d total)",
                page.meta.page, page.meta.total_pages, page.meta.total,
            )
        LOGGER.debug("Membership snapshot replaced: %d records", len(self._records))
        self.snapshot_changed.emit(self.member_ids())
        return self.records

    async def add(self, post_id: str) -> None:
        ack = await self._repo.add(post_id)
        self._raise_if_rejected(ack, f"Server rejected adding {post_id}")
        self._apply_status(post_id, ACTIVE_MEMBERSHIP_STATUS)
        self._publish_change(post_id, added=True)

    async def remove(self, post_id: str) -> None:
        ack = await self._repo.remove(post_id)
        self._raise_if_rejected(ack, f"Server rejected removing {post_id}")
        self._records.pop(post_id, None)
        self._publish_change(post_id, added=False)

    async def update_status(self, post_id: str, status: int) -> None:
        """Mark an existing record active (1) or inactive (0)."""
        status = _check_status(status)
        ack = await self._repo.update(post_id, status)
        self._raise_if_rejected(ack, f"Server rejected updating {post_id}")
        self._apply_status(post_id, status)
        self._publish_change(post_id, added=status == ACTIVE_MEMBERSHIP_STATUS)
        self.snapshot_changed.emit(self.member_ids())
        await self.refresh_counts()

    async def bulk_add(self, post_ids: Iterable[str], status: int = ACTIVE_MEMBERSHIP_STATUS) -> None:
        post_ids = list(dict.fromkeys(post_ids))
        if not post_ids:
            return
        status = _check_status(status)
        ack = await self._repo.bulk_add(post_ids, status)
        self._raise_if_rejected(ack, f"Server rejected adding {len(post_ids)} items")
        await self._resync()

    async def bulk_update(self, updates: Mapping[str, int]) -> None:
        """Apply ``{post_id: status}`` in one round trip."""
        updates = {post_id: _check_status(status) for post_id, status in updates.items()}
        if not updates:
            return
        ack = await self._repo.bulk_update(updates)
        self._raise_if_rejected(ack, f"Server rejected updating {len(updates)} items")
        await self._resync()

    async def bulk_remove(self, post_ids: Iterable[str]) -> None:
        post_ids = list(dict.fromkeys(post_ids))
        if not post_ids:
            return
        ack = await self._repo.bulk_remove(post_ids)
        self._raise_if_rejected(ack, f"Server rejected removing {len(post_ids)} items")
        for post_id in post_ids:
            if self._records.pop(post_id, None) is not None:
                self._publish_change(post_id, added=False)
        self.snapshot_changed.emit(self.member_ids())
        await self.refresh_counts()

    async def refresh_counts(self) -> Optional[WishlistCounts]:
        """Fetch the summary counts; failures are logged, never raised."""
        try:
            counts = await self._repo.get_counts()
        except EduMatchError as exc:
            LOGGER.warning("Wishlist counts refresh failed: %s", exc)
            return None
        self._counts = counts
        if self._events is not None:
            self._events.publish(WishlistCountsUpdatedEvent(counts=counts, source="membership_store"))
        return counts

    # -- internal -------------------------------------------------------------

    async def _resync(self) -> None:
        # The mutation is already acknowledged; a failed re-list only leaves
        # the snapshot stale until the next one.
        try:
            await self.list()
        except EduMatchError as exc:
            LOGGER.warning("Membership refresh after bulk change failed: %s", exc)
        await self.refresh_counts()

    def _apply_status(self, post_id: str, status: int) -> None:
        if status == ACTIVE_MEMBERSHIP_STATUS:
            previous = self._records.get(post_id)
            self._records[post_id] = MembershipRecord(
                post_id=post_id,
                added_at=previous.added_at if previous else datetime.now(timezone.utc),
                status=status,
            )
        else:
            self._records.pop(post_id, None)

    @staticmethod
    def _raise_if_rejected(ack: MutationAck, fallback: str) -> None:
        if not ack.ok:
            raise ServerError(ack.error or fallback)

    def _publish_change(self, post_id: str, *, added: bool) -> None:
        if self._events is not None:
            self._events.publish(MembershipChangedEvent(post_id=post_id, added=added, source="membership_store"))
