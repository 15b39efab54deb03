import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from edumatch.application.services.catalog_orchestrator import CatalogFetchOrchestrator  # noqa: E402
from edumatch.application.services.catalog_state import CatalogState  # noqa: E402
from edumatch.application.services.membership_store import MembershipStore  # noqa: E402
from edumatch.application.services.refetch_gate import RefetchGate  # noqa: E402
from edumatch.application.services.toggle_controller import OptimisticToggleController  # noqa: E402
from edumatch.domain.models import (  # noqa: E402
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
    WishlistCounts,
)
from edumatch.domain.repositories import ICatalogRepository, IMembershipRepository  # noqa: E402
from edumatch.events.bus import EventBus  # noqa: E402


class FakeMembershipRepository(IMembershipRepository):
    """In-memory wishlist; set ``*_gate`` events to hold a call open."""

    def __init__(self, ids=()):
        self.ids: List[str] = list(ids)
        self.calls: List[tuple] = []
        self.list_error: Optional[Exception] = None
        self.add_error: Optional[Exception] = None
        self.remove_error: Optional[Exception] = None
        self.counts_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.reject_bulk = False
        self.reject_add = False
        self.reject_remove = False
        self.add_gate: Optional[asyncio.Event] = None
        self.remove_gate: Optional[asyncio.Event] = None

    async def list(self, query):
        self.calls.append(("list", query))
        await asyncio.sleep(0)
        if self.list_error is not None:
            raise self.list_error
        records = tuple(MembershipRecord(post_id=post_id) for post_id in self.ids)
        meta = PageMeta(total=len(records), page=query.page, limit=query.limit, total_pages=1)
        return MembershipPage(records=records, meta=meta)

    async def add(self, post_id):
        self.calls.append(("add", post_id))
        if self.add_gate is not None:
            await self.add_gate.wait()
        await asyncio.sleep(0)
        if self.add_error is not None:
            raise self.add_error
        if self.reject_add:
            return MutationAck(ok=False, error="rejected")
        self.ids.append(post_id)
        return MutationAck(ok=True)

    async def remove(self, post_id):
        self.calls.append(("remove", post_id))
        if self.remove_gate is not None:
            await self.remove_gate.wait()
        await asyncio.sleep(0)
        if self.remove_error is not None:
            raise self.remove_error
        if self.reject_remove:
            return MutationAck(ok=False, error="rejected")
        self.ids.remove(post_id)
        return MutationAck(ok=True)

    async def update(self, post_id, status):
        self.calls.append(("update", post_id, status))
        await asyncio.sleep(0)
        if self.update_error is not None:
            raise self.update_error
        self._set_status(post_id, status)
        return MutationAck(ok=True)

    async def bulk_add(self, post_ids, status):
        self.calls.append(("bulk_add", tuple(post_ids), status))
        await asyncio.sleep(0)
        if self.reject_bulk:
            return MutationAck(ok=False, error="bulk rejected")
        for post_id in post_ids:
            self._set_status(post_id, status)
        return MutationAck(ok=True)

    async def bulk_update(self, updates):
        self.calls.append(("bulk_update", dict(updates)))
        await asyncio.sleep(0)
        if self.reject_bulk:
            return MutationAck(ok=False, error="bulk rejected")
        for post_id, status in updates.items():
            self._set_status(post_id, status)
        return MutationAck(ok=True)

    async def bulk_remove(self, post_ids):
        self.calls.append(("bulk_remove", tuple(post_ids)))
        await asyncio.sleep(0)
        if self.reject_bulk:
            return MutationAck(ok=False, error="bulk rejected")
        self.ids = [post_id for post_id in self.ids if post_id not in post_ids]
        return MutationAck(ok=True)

    async def get_counts(self):
        self.calls.append(("counts",))
        if self.counts_error is not None:
            raise self.counts_error
        return WishlistCounts(total=len(self.ids), by_category={"programs": len(self.ids)})

    def mutations(self) -> List[tuple]:
        return [call for call in self.calls if call[0] in ("add", "remove")]

    def _set_status(self, post_id, status):
        if status == 1 and post_id not in self.ids:
            self.ids.append(post_id)
        elif status == 0 and post_id in self.ids:
            self.ids.remove(post_id)


class FakeCatalogRepository(ICatalogRepository):
    """Serves the whole catalog of each kind, like the explore endpoints."""

    def __init__(self, rows: Dict[EntityKind, list], facets: Optional[Dict[EntityKind, Facets]] = None):
        self.rows = {kind: list(rows.get(kind, [])) for kind in EntityKind}
        self.facets = facets or {}
        self.errors: Dict[EntityKind, Exception] = {}
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None

    async def list(self, kind, query):
        self.calls.append((kind, query))
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if kind in self.errors:
            raise self.errors[kind]
        return CatalogPage(
            data=tuple(self.rows[kind]),
            facets=self.facets.get(kind, Facets()),
            total=len(self.rows[kind]),
        )

    def refresh_count(self) -> int:
        return sum(1 for kind, _ in self.calls if kind is EntityKind.PROGRAM)


def make_program(post_id, **overrides):
    values = dict(
        id=post_id,
        title=f"Programme {post_id}",
        description="",
        country="Germany",
        days_left=30,
        university="TU Berlin",
        field="Computer Science",
        price="$12,000",
        attendance="On campus",
    )
    values.update(overrides)
    return Program(**values)


def make_scholarship(post_id, **overrides):
    values = dict(
        id=post_id,
        title=f"Scholarship {post_id}",
        country="France",
        days_left=10,
        provider="Erasmus",
        university="Sorbonne",
        amount="5000 EUR",
    )
    values.update(overrides)
    return Scholarship(**values)


def make_research(post_id, **overrides):
    values = dict(
        id=post_id,
        title=f"Lab {post_id}",
        country="Japan",
        days_left=20,
        institution="University of Tokyo",
        professor="Dr. Sato",
        field="Robotics",
        position="PhD Candidate",
    )
    values.update(overrides)
    return ResearchPosition(**values)


@pytest.fixture
def catalog_rows():
    return {
        EntityKind.PROGRAM: [make_program("p1"), make_program("p2", title="Data Science MSc"), make_program("p3")],
        EntityKind.SCHOLARSHIP: [make_scholarship("s1")],
        EntityKind.RESEARCH: [make_research("r1")],
    }


@pytest.fixture
def membership_repo():
    return FakeMembershipRepository(ids=["p1", "s1"])


@pytest.fixture
def catalog_repo(catalog_rows):
    return FakeCatalogRepository(
        catalog_rows,
        facets={
            EntityKind.PROGRAM: Facets(disciplines=("Computer Science",), countries=("Germany",)),
            EntityKind.SCHOLARSHIP: Facets(countries=("France",)),
        },
    )


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def wishlist(membership_repo, catalog_repo, event_bus):
    """Store, lists, gate, orchestrator and controller wired like production."""
    store = MembershipStore(membership_repo, event_bus)
    state = CatalogState()
    gate = RefetchGate()
    orchestrator = CatalogFetchOrchestrator(catalog_repo, store, state, gate, event_bus)
    controller = OptimisticToggleController(
        store,
        orchestrator,
        state,
        gate,
        event_bus,
        removal_grace_ms=50,
        add_debounce_ms=0,
    )
    return SimpleNamespace(
        store=store,
        state=state,
        gate=gate,
        orchestrator=orchestrator,
        controller=controller,
        bus=event_bus,
        membership_repo=membership_repo,
        catalog_repo=catalog_repo,
    )
