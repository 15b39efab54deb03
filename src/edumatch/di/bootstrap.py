"""Wire the wishlist services into a :class:`Container`."""

from __future__ import annotations

from typing import Optional

import httpx

from .container import Container
from ..application.services.catalog_orchestrator import CatalogFetchOrchestrator
from ..application.services.catalog_state import CatalogState
from ..application.services.membership_store import MembershipStore
from ..application.services.refetch_gate import RefetchGate
from ..application.services.toggle_controller import OptimisticToggleController
from ..config import MIN_REMOVAL_GRACE_MS
from ..domain.repositories import ICatalogRepository, IMembershipRepository
from ..errors.handler import ErrorHandler
from ..events.bus import EventBus
from ..gui.viewmodels.wishlist_viewmodel import WishlistViewModel
from ..infrastructure.api_client import ApiClient
from ..infrastructure.repositories.http_catalog_repository import HttpCatalogRepository
from ..infrastructure.repositories.http_membership_repository import HttpMembershipRepository
from ..settings.manager import SettingsManager
from ..utils.logging import get_logger


def bootstrap(
    container: Container,
    settings: SettingsManager,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """Register all application services in the DI container.

    *transport* replaces the network layer of the API client (tests pass an
    :class:`httpx.MockTransport`).
    """
    container.register_instance(SettingsManager, settings)
    container.register_factory(EventBus, lambda c: EventBus(get_logger("events")))
    container.register_factory(
        ErrorHandler,
        lambda c: ErrorHandler(get_logger("errors"), c.resolve(EventBus)),
    )
    container.register_factory(
        ApiClient,
        lambda c: ApiClient(
            settings.get("api.base_url"),
            token=settings.get("api.token"),
            timeout=float(settings.get("api.timeout_sec")),
            transport=transport,
        ),
    )
    container.register_factory(IMembershipRepository, lambda c: HttpMembershipRepository(c.resolve(ApiClient)))
    container.register_factory(ICatalogRepository, lambda c: HttpCatalogRepository(c.resolve(ApiClient)))

    container.register_singleton(CatalogState)
    container.register_singleton(RefetchGate)
    container.register_factory(
        MembershipStore,
        lambda c: MembershipStore(
            c.resolve(IMembershipRepository),
            c.resolve(EventBus),
            page_limit=int(settings.get("wishlist.membership_page_limit")),
        ),
    )
    container.register_factory(
        CatalogFetchOrchestrator,
        lambda c: CatalogFetchOrchestrator(
            c.resolve(ICatalogRepository),
            c.resolve(MembershipStore),
            c.resolve(CatalogState),
            c.resolve(RefetchGate),
            c.resolve(EventBus),
            page_limit=int(settings.get("wishlist.catalog_page_limit")),
        ),
    )
    container.register_factory(
        OptimisticToggleController,
        lambda c: OptimisticToggleController(
            c.resolve(MembershipStore),
            c.resolve(CatalogFetchOrchestrator),
            c.resolve(CatalogState),
            c.resolve(RefetchGate),
            c.resolve(EventBus),
            c.resolve(ErrorHandler),
            removal_grace_ms=max(MIN_REMOVAL_GRACE_MS, int(settings.get("wishlist.removal_grace_ms"))),
            add_debounce_ms=int(settings.get("wishlist.add_debounce_ms")),
        ),
    )
    container.register_factory(
        WishlistViewModel,
        lambda c: WishlistViewModel(
            c.resolve(MembershipStore),
            c.resolve(CatalogFetchOrchestrator),
            c.resolve(CatalogState),
            c.resolve(OptimisticToggleController),
            c.resolve(EventBus),
        ),
    )
