from .core import (
    CatalogEntity,
    CatalogPage,
    EntityKind,
    Facets,
    MembershipPage,
    MembershipRecord,
    MutationAck,
    PageMeta,
    Program,
    ResearchPosition,
    Scholarship,
    Tab,
    WishlistCounts,
)
from .query import CatalogQuery, FeeRange, FilterCriteria, MembershipQuery, SortOption

__all__ = [
    "CatalogEntity",
    "CatalogPage",
    "CatalogQuery",
    "EntityKind",
    "Facets",
    "FeeRange",
    "FilterCriteria",
    "MembershipPage",
    "MembershipQuery",
    "MembershipRecord",
    "MutationAck",
    "PageMeta",
    "Program",
    "ResearchPosition",
    "Scholarship",
    "SortOption",
    "Tab",
    "WishlistCounts",
]
