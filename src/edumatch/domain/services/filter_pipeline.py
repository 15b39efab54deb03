"""Derived-view filter pipeline for wishlist tabs.

Pure, synchronous filtering of one typed entity list against the active
:class:`FilterCriteria`.  Steps run in a fixed order and are AND-combined;
the values of a multi-select criterion are OR-combined against the entity.
Nothing here mutates its inputs, so the result can be recomputed on every
render.
"""
from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from ...config import DEGREE_LEVEL_KEYWORDS
from ..models.core import CatalogEntity, Program, Tab
from ..models.query import FilterCriteria

E = TypeVar("E", bound=CatalogEntity)

Predicate = Callable[[CatalogEntity], bool]

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_price(price: str) -> Optional[float]:
    """Strip everything but digits and dots, then read a float.

    Returns ``None`` when nothing numeric is left ("Contact for details") or
    the remainder is not a number ("1.2.3").
    """
    cleaned = _NON_NUMERIC.sub("", price or "")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def degree_keywords(level: str) -> tuple[str, ...]:
    normalized = level.casefold().strip()
    for key, keywords in DEGREE_LEVEL_KEYWORDS.items():
        if normalized == key or normalized in keywords or normalized.startswith(key):
            return keywords
    return (normalized,)


def _contains_any(haystack: str, needles: Iterable[str]) -> bool:
    text = haystack.casefold()
    return any(needle.casefold() in text for needle in needles)


# -- individual steps ----------------------------------------------------------

def matches_search(entity: CatalogEntity, query: str) -> bool:
    needle = query.strip().casefold()
    if not needle:
        return True
    return any(needle in (value or "").casefold() for value in entity.search_fields())


def matches_discipline(entity: CatalogEntity, disciplines: Iterable[str]) -> bool:
    return _contains_any(entity.field_text or "", disciplines)


def matches_country(entity: CatalogEntity, countries: Iterable[str]) -> bool:
    return entity.country in set(countries)


def matches_fee_range(entity: CatalogEntity, criteria: FilterCriteria) -> bool:
    if not isinstance(entity, Program):
        return True
    amount = parse_price(entity.price)
    if amount is None:
        return False
    return criteria.fee_range.contains(amount)


def matches_degree_level(entity: CatalogEntity, levels: Iterable[str]) -> bool:
    text = entity.field_text or ""
    return any(_contains_any(text, degree_keywords(level)) for level in levels)


def matches_attendance(entity: CatalogEntity, attendance: Iterable[str]) -> bool:
    value = entity.attendance_value
    if value is None:
        return True
    return value in set(attendance)


def matches_expiry(entity: CatalogEntity, show_expired: bool) -> bool:
    return show_expired or not entity.is_expired


# -- pipeline ------------------------------------------------------------------

def build_steps(criteria: FilterCriteria, active_tab: Tab) -> List[Predicate]:
    """Return the active predicates in pipeline order."""
    tab = Tab.parse(active_tab)
    steps: List[Predicate] = []
    if criteria.search_query.strip():
        query = criteria.search_query
        steps.append(lambda e: matches_search(e, query))
    if criteria.disciplines:
        disciplines = frozenset(criteria.disciplines)
        steps.append(lambda e: matches_discipline(e, disciplines))
    if criteria.countries:
        countries = frozenset(criteria.countries)
        steps.append(lambda e: matches_country(e, countries))
    if criteria.fee_range is not None and tab is Tab.PROGRAMMES:
        steps.append(lambda e: matches_fee_range(e, criteria))
    # Durations are collected but never filtered on.
    if criteria.degree_levels:
        levels = frozenset(criteria.degree_levels)
        steps.append(lambda e: matches_degree_level(e, levels))
    if criteria.attendance and tab is not Tab.SCHOLARSHIPS:
        attendance = frozenset(criteria.attendance)
        steps.append(lambda e: matches_attendance(e, attendance))
    show_expired = criteria.show_expired
    steps.append(lambda e: matches_expiry(e, show_expired))
    return steps


def filter_entities(
    entities: Sequence[E],
    criteria: FilterCriteria,
    active_tab: Tab,
) -> List[E]:
    """Return the entities of *entities* that pass every active filter."""
    steps = build_steps(criteria, active_tab)
    result: List[E] = list(entities)
    for step in steps:
        result = [entity for entity in result if step(entity)]
    return result


__all__ = [
    "build_steps",
    "degree_keywords",
    "filter_entities",
    "matches_attendance",
    "matches_country",
    "matches_degree_level",
    "matches_discipline",
    "matches_expiry",
    "matches_fee_range",
    "matches_search",
    "parse_price",
]
