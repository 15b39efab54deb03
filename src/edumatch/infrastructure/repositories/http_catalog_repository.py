import logging
from typing import Any, Dict

from edumatch.config import EXPLORE_ROUTE_TEMPLATE
from edumatch.domain.models import CatalogPage, CatalogQuery, EntityKind
from edumatch.domain.repositories import ICatalogRepository
from edumatch.errors import ServerError
from edumatch.infrastructure.api_client import ApiClient

from .catalog_mapper import MAPPERS, entity_id, to_facets

LOGGER = logging.getLogger(__name__)


class HttpCatalogRepository(ICatalogRepository):
    def __init__(self, client: ApiClient):
        self._client = client

    async def list(self, kind: EntityKind, query: CatalogQuery) -> CatalogPage:
        kind = EntityKind(kind)
        route = EXPLORE_ROUTE_TEMPLATE.format(kind=kind.value)
        payload = await self._client.get_json(route, params=query.to_params())
        if not isinstance(payload, dict):
            raise ServerError(f"Unexpected {kind.value} catalog payload")
        return self._map_page(kind, payload)

    def _map_page(self, kind: EntityKind, payload: Dict[str, Any]) -> CatalogPage:
        mapper = MAPPERS[kind]
        rows = [row for row in payload.get("data") or [] if isinstance(row, dict)]
        entities = []
        for row in rows:
            if not entity_id(row):
                LOGGER.debug("Skipping %s row without an id", kind.value)
                continue
            entities.append(mapper(row))
        meta = payload.get("meta") or {}
        return CatalogPage(
            data=tuple(entities),
            facets=to_facets(payload.get("availableFilters")),
            total=int(meta.get("total") or len(entities)),
        )
