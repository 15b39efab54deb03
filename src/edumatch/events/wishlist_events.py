from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from ..domain.models import Facets, Tab, WishlistCounts


@dataclass(frozen=True)
class DomainEvent:
    """Immutable fact published by the wishlist services."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""


class NotificationKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    FAILED = "failed"


@dataclass(frozen=True)
class WishlistNotificationEvent(DomainEvent):
    """Transient, dismissible message for the user after a toggle."""
    kind: NotificationKind = NotificationKind.ADDED
    category: Tab = Tab.PROGRAMMES
    post_id: str = ""
    message: str = ""


@dataclass(frozen=True)
class WishlistCountsUpdatedEvent(DomainEvent):
    counts: WishlistCounts = field(default_factory=WishlistCounts)


@dataclass(frozen=True)
class MembershipChangedEvent(DomainEvent):
    post_id: str = ""
    added: bool = True


@dataclass(frozen=True)
class CatalogRefreshedEvent(DomainEvent):
    programs: int = 0
    scholarships: int = 0
    research_positions: int = 0
    facets: Facets = field(default_factory=Facets)


@dataclass(frozen=True)
class CatalogRefreshFailedEvent(DomainEvent):
    error: Optional[Exception] = None
