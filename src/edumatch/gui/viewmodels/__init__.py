from edumatch.events.signal import Signal, ObservableProperty
from .base import BaseViewModel
from .wishlist_viewmodel import WishlistViewModel

__all__ = [
    "BaseViewModel",
    "ObservableProperty",
    "Signal",
    "WishlistViewModel",
]
