from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple


class EntityKind(str, Enum):
    """Catalog the entity was listed from; values match the catalog routes."""
    PROGRAM = "programs"
    SCHOLARSHIP = "scholarships"
    RESEARCH = "research"


class Tab(str, Enum):
    """Tabs of the wishlist page, one per catalog."""
    PROGRAMMES = "programmes"
    SCHOLARSHIPS = "scholarships"
    RESEARCH = "research"

    @property
    def kind(self) -> EntityKind:
        return _TAB_KINDS[self]

    @property
    def item_label(self) -> str:
        return _TAB_LABELS[self]

    @classmethod
    def parse(cls, value) -> "Tab":
        """Unknown tab ids fall back to programmes."""
        if isinstance(value, Tab):
            return value
        try:
            return cls(str(value).casefold())
        except ValueError:
            return cls.PROGRAMMES


_TAB_KINDS = {
    Tab.PROGRAMMES: EntityKind.PROGRAM,
    Tab.SCHOLARSHIPS: EntityKind.SCHOLARSHIP,
    Tab.RESEARCH: EntityKind.RESEARCH,
}

_TAB_LABELS = {
    Tab.PROGRAMMES: "Programme",
    Tab.SCHOLARSHIPS: "Scholarship",
    Tab.RESEARCH: "Research position",
}


@dataclass(frozen=True)
class MembershipRecord:
    post_id: str
    added_at: Optional[datetime] = None
    status: int = 1

    @property
    def is_active(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class CatalogEntity:
    """Immutable snapshot shared by the three catalog variants."""
    id: str
    title: str
    description: str = ""
    country: str = ""
    days_left: int = 0
    match_score: str = ""
    deadline: Optional[str] = None
    application_count: int = 0

    kind: ClassVar[EntityKind] = EntityKind.PROGRAM

    @property
    def organization(self) -> str:
        return ""

    @property
    def field_text(self) -> str:
        """Free text used by the discipline and degree-level heuristics."""
        return ""

    @property
    def attendance_value(self) -> Optional[str]:
        return None

    @property
    def is_expired(self) -> bool:
        return self.days_left < 0

    def search_fields(self) -> Tuple[str, ...]:
        return (self.title, self.description, self.organization, self.field_text)


@dataclass(frozen=True)
class Program(CatalogEntity):
    university: str = ""
    field: str = ""
    price: str = ""
    attendance: str = ""
    funding: str = ""

    kind: ClassVar[EntityKind] = EntityKind.PROGRAM

    @property
    def organization(self) -> str:
        return self.university

    @property
    def field_text(self) -> str:
        return self.field

    @property
    def attendance_value(self) -> Optional[str]:
        return self.attendance


@dataclass(frozen=True)
class Scholarship(CatalogEntity):
    provider: str = ""
    university: str = ""
    essay_required: str = ""
    amount: str = ""

    kind: ClassVar[EntityKind] = EntityKind.SCHOLARSHIP

    @property
    def organization(self) -> str:
        return self.provider

    @property
    def field_text(self) -> str:
        # Scholarships carry no discipline; the title is the closest text.
        return self.title

    def search_fields(self) -> Tuple[str, ...]:
        return (self.title, self.description, self.provider, self.university)


@dataclass(frozen=True)
class ResearchPosition(CatalogEntity):
    institution: str = ""
    professor: str = ""
    field: str = ""
    position: str = ""

    kind: ClassVar[EntityKind] = EntityKind.RESEARCH

    @property
    def organization(self) -> str:
        return self.institution

    @property
    def field_text(self) -> str:
        return " ".join(part for part in (self.field, self.position) if part)


@dataclass(frozen=True)
class Facets:
    """Filter values advertised by the catalog responses."""
    disciplines: Tuple[str, ...] = ()
    countries: Tuple[str, ...] = ()
    degree_levels: Tuple[str, ...] = ()
    attendance_types: Tuple[str, ...] = ()

    def merged(self, other: "Facets") -> "Facets":
        return Facets(
            disciplines=_union(self.disciplines, other.disciplines),
            countries=_union(self.countries, other.countries),
            degree_levels=_union(self.degree_levels, other.degree_levels),
            attendance_types=_union(self.attendance_types, other.attendance_types),
        )


def _union(left: Tuple[str, ...], right: Tuple[str, ...]) -> Tuple[str, ...]:
    seen = dict.fromkeys(left)
    seen.update(dict.fromkeys(right))
    return tuple(seen)


@dataclass(frozen=True)
class WishlistCounts:
    total: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CatalogPage:
    """One catalog response: the rows plus the facets it advertises."""
    data: Tuple[CatalogEntity, ...] = ()
    facets: Facets = field(default_factory=Facets)
    total: int = 0


@dataclass(frozen=True)
class PageMeta:
    """Pagination block returned next to a list response."""
    total: int = 0
    page: int = 1
    limit: int = 0
    total_pages: int = 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class MembershipPage:
    records: Tuple[MembershipRecord, ...] = ()
    meta: PageMeta = field(default_factory=PageMeta)


@dataclass(frozen=True)
class MutationAck:
    ok: bool
    error: Optional[str] = None
