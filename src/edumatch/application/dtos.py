from dataclasses import dataclass, field
from typing import Optional, Tuple

from edumatch.domain.models import CatalogEntity, Facets, Program, ResearchPosition, Scholarship, Tab


@dataclass(frozen=True)
class CatalogSnapshot:
    """The three render-ready lists plus the facets that produced them."""
    programs: Tuple[Program, ...] = ()
    scholarships: Tuple[Scholarship, ...] = ()
    research_positions: Tuple[ResearchPosition, ...] = ()
    facets: Facets = field(default_factory=Facets)

    def for_tab(self, tab: Tab) -> Tuple[CatalogEntity, ...]:
        tab = Tab.parse(tab)
        if tab is Tab.SCHOLARSHIPS:
            return self.scholarships
        if tab is Tab.RESEARCH:
            return self.research_positions
        return self.programs

    def ids(self) -> set:
        return {
            entity.id
            for group in (self.programs, self.scholarships, self.research_positions)
            for entity in group
        }


@dataclass(frozen=True)
class TabView:
    """Tab-scoped read model handed to presentation code."""
    tab: Tab
    data: Tuple[CatalogEntity, ...] = ()
    error: Optional[str] = None

    @property
    def total_items(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return not self.data
