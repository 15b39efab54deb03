import logging
from typing import Any, Dict, Iterable, Mapping
from urllib.parse import quote

from edumatch.config import (
    ACTIVE_MEMBERSHIP_STATUS,
    COUNT_CATEGORIES,
    WISHLIST_BULK_ROUTE,
    WISHLIST_ROUTE,
    WISHLIST_STATS_ROUTE,
)
from edumatch.domain.models import (
    MembershipPage,
    MembershipQuery,
    MembershipRecord,
    MutationAck,
    PageMeta,
    WishlistCounts,
)
from edumatch.domain.repositories import IMembershipRepository
from edumatch.errors import ServerError
from edumatch.infrastructure.api_client import ApiClient

from .catalog_mapper import parse_timestamp

LOGGER = logging.getLogger(__name__)


def _as_int(value: Any, what: str, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ServerError(f"Malformed {what} in wishlist payload: {value!r}") from exc


class HttpMembershipRepository(IMembershipRepository):
    def __init__(self, client: ApiClient):
        self._client = client

    async def list(self, query: MembershipQuery) -> MembershipPage:
        payload = await self._client.get_json(WISHLIST_ROUTE, params=query.to_params())
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise ServerError("Unexpected wishlist payload")
        records = tuple(
            self._map_row_to_record(row) for row in rows if isinstance(row, dict) and row.get("postId")
        )
        return MembershipPage(records=records, meta=self._map_meta(payload.get("meta"), query, len(records)))

    async def add(self, post_id: str) -> MutationAck:
        payload = await self._client.post_json(
            WISHLIST_ROUTE,
            {"postId": post_id, "status": ACTIVE_MEMBERSHIP_STATUS},
        )
        return self._map_ack(payload)

    async def remove(self, post_id: str) -> MutationAck:
        payload = await self._client.delete_json(self._item_route(post_id))
        return self._map_ack(payload)

    async def update(self, post_id: str, status: int) -> MutationAck:
        payload = await self._client.put_json(self._item_route(post_id), {"status": int(status)})
        return self._map_ack(payload)

    async def bulk_add(self, post_ids: Iterable[str], status: int = ACTIVE_MEMBERSHIP_STATUS) -> MutationAck:
        payload = await self._client.post_json(
            WISHLIST_BULK_ROUTE,
            {"postIds": list(post_ids), "status": int(status)},
        )
        return self._map_ack(payload)

    async def bulk_update(self, updates: Mapping[str, int]) -> MutationAck:
        payload = await self._client.put_json(
            WISHLIST_BULK_ROUTE,
            {"updates": [{"postId": post_id, "status": int(status)} for post_id, status in updates.items()]},
        )
        return self._map_ack(payload)

    async def bulk_remove(self, post_ids: Iterable[str]) -> MutationAck:
        payload = await self._client.delete_json(WISHLIST_BULK_ROUTE, {"postIds": list(post_ids)})
        return self._map_ack(payload)

    async def get_counts(self) -> WishlistCounts:
        payload = await self._client.get_json(WISHLIST_STATS_ROUTE)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ServerError("Unexpected wishlist stats payload")
        by_type = data.get("byType") or {}
        if not isinstance(by_type, dict):
            raise ServerError("Unexpected wishlist stats payload")
        by_category = dict.fromkeys(COUNT_CATEGORIES, 0)
        for key, value in by_type.items():
            by_category[str(key)] = _as_int(value, f"count for {key}")
        return WishlistCounts(total=_as_int(data.get("total"), "total"), by_category=by_category)

    @staticmethod
    def _item_route(post_id: str) -> str:
        return f"{WISHLIST_ROUTE}/{quote(post_id, safe='')}"

    def _map_row_to_record(self, row: Dict[str, Any]) -> MembershipRecord:
        return MembershipRecord(
            post_id=str(row["postId"]),
            added_at=parse_timestamp(row.get("createdAt")),
            status=_as_int(row.get("status"), "status", ACTIVE_MEMBERSHIP_STATUS),
        )

    @staticmethod
    def _map_meta(meta: Any, query: MembershipQuery, count: int) -> PageMeta:
        # No meta block: the rows are the only page.
        if not isinstance(meta, dict):
            return PageMeta(total=count, page=query.page, limit=query.limit, total_pages=1 if count else 0)
        return PageMeta(
            total=_as_int(meta.get("total"), "meta.total", count),
            page=_as_int(meta.get("page"), "meta.page", query.page),
            limit=_as_int(meta.get("limit"), "meta.limit", query.limit),
            total_pages=_as_int(meta.get("totalPages"), "meta.totalPages", 1 if count else 0),
        )

    @staticmethod
    def _map_ack(payload: Any) -> MutationAck:
        # An empty 2xx body counts as success.
        if not isinstance(payload, dict):
            return MutationAck(ok=True)
        ok = payload.get("success", True) is not False
        error = payload.get("error")
        if isinstance(error, dict):
            error = error.get("message") or error.get("code")
        if not ok:
            LOGGER.debug("Wishlist mutation rejected: %s", error)
        return MutationAck(ok=ok, error=str(error) if error else None)
