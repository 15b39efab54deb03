"""Optimistic wishlist synchronisation and filtering for EduMatch."""

__version__ = "0.1.0"
