from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Set

from ...errors import InvalidFilterError


class SortOption(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_POPULAR = "most-popular"
    DEADLINE = "deadline"
    MATCH_SCORE = "match-score"

    def to_catalog_sort(self) -> str:
        """The wishlist page only distinguishes "newest" from everything else."""
        return "newest" if self is SortOption.NEWEST else "most-popular"


@dataclass(frozen=True)
class FeeRange:
    """Inclusive fee bucket in the catalog currency."""

    min: float
    max: float

    @classmethod
    def parse(cls, value: str) -> "FeeRange":
        """Parse the ``"min-max"`` bucket notation used by the filter sidebar."""
        try:
            low, high = (float(part) for part in value.split("-", 1))
        except (AttributeError, ValueError) as exc:
            raise InvalidFilterError(f"Invalid fee range {value!r}") from exc
        if low > high:
            raise InvalidFilterError(f"Invalid fee range {value!r}: min > max")
        return cls(low, high)

    def contains(self, amount: float) -> bool:
        return self.min <= amount <= self.max

    def __str__(self) -> str:
        return f"{self.min:g}-{self.max:g}"


@dataclass
class FilterCriteria:
    """User-controlled predicates; every field defaults to "no filtering"."""

    search_query: str = ""
    disciplines: Set[str] = field(default_factory=set)
    countries: Set[str] = field(default_factory=set)
    fee_range: Optional[FeeRange] = None
    # Modelled for the filter sidebar but never applied to entities.
    durations: Set[str] = field(default_factory=set)
    degree_levels: Set[str] = field(default_factory=set)
    attendance: Set[str] = field(default_factory=set)
    show_expired: bool = False

    def fingerprint(self) -> tuple:
        """Hashable snapshot used as a memoisation key."""
        return (
            self.search_query,
            _frozen(self.disciplines),
            _frozen(self.countries),
            self.fee_range,
            _frozen(self.durations),
            _frozen(self.degree_levels),
            _frozen(self.attendance),
            self.show_expired,
        )

    def is_empty(self) -> bool:
        return self.fingerprint() == FilterCriteria().fingerprint()

    def copy(self) -> "FilterCriteria":
        return FilterCriteria(
            search_query=self.search_query,
            disciplines=set(self.disciplines),
            countries=set(self.countries),
            fee_range=self.fee_range,
            durations=set(self.durations),
            degree_levels=set(self.degree_levels),
            attendance=set(self.attendance),
            show_expired=self.show_expired,
        )


def _frozen(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(values)


@dataclass
class MembershipQuery:
    """Membership list query - Fluent API like the catalog queries"""

    page: int = 1
    limit: int = 1000
    status: Optional[int] = 1

    def paginate(self, page: int, page_size: int):
        self.page = page
        self.limit = page_size
        return self

    def any_status(self):
        self.status = None
        return self

    def to_params(self) -> dict:
        params = {"page": self.page, "limit": self.limit}
        if self.status is not None:
            params["status"] = self.status
        return params


@dataclass
class CatalogQuery:
    page: int = 1
    limit: int = 1000
    sort: SortOption = SortOption.NEWEST

    def to_params(self) -> dict:
        return {"page": self.page, "limit": self.limit, "sortBy": self.sort.to_catalog_sort()}
