from abc import ABC, abstractmethod
from typing import Iterable, Mapping

from .models import CatalogPage, EntityKind, MembershipPage, MutationAck, WishlistCounts
from .models.query import CatalogQuery, MembershipQuery


class IMembershipRepository(ABC):
    """Remote membership (wishlist) API."""

    @abstractmethod
    async def list(self, query: MembershipQuery) -> MembershipPage:
        """Fetch the membership records matching *query* with the page meta"""
        pass

    @abstractmethod
    async def add(self, post_id: str) -> MutationAck:
        """Ask the server to add *post_id* to the collection"""
        pass

    @abstractmethod
    async def remove(self, post_id: str) -> MutationAck:
        """Ask the server to remove *post_id* from the collection"""
        pass

    @abstractmethod
    async def update(self, post_id: str, status: int) -> MutationAck:
        """Change the status of an existing record"""
        pass

    @abstractmethod
    async def bulk_add(self, post_ids: Iterable[str], status: int) -> MutationAck:
        pass

    @abstractmethod
    async def bulk_update(self, updates: Mapping[str, int]) -> MutationAck:
        """Apply ``{post_id: status}`` in one request"""
        pass

    @abstractmethod
    async def bulk_remove(self, post_ids: Iterable[str]) -> MutationAck:
        pass

    @abstractmethod
    async def get_counts(self) -> WishlistCounts:
        """Aggregate counts for summary widgets"""
        pass


class ICatalogRepository(ABC):
    @abstractmethod
    async def list(self, kind: EntityKind, query: CatalogQuery) -> CatalogPage:
        """List one catalog page together with its advertised facets"""
        pass
