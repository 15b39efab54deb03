from .bus import Event, EventBus, Subscription
from .signal import ObservableProperty, Signal
from .wishlist_events import (
    CatalogRefreshedEvent,
    CatalogRefreshFailedEvent,
    DomainEvent,
    MembershipChangedEvent,
    NotificationKind,
    WishlistCountsUpdatedEvent,
    WishlistNotificationEvent,
)

__all__ = [
    "CatalogRefreshFailedEvent",
    "CatalogRefreshedEvent",
    "DomainEvent",
    "Event",
    "EventBus",
    "MembershipChangedEvent",
    "NotificationKind",
    "ObservableProperty",
    "Signal",
    "Subscription",
    "WishlistCountsUpdatedEvent",
    "WishlistNotificationEvent",
]
