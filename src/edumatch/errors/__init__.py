"""Custom exception hierarchy for EduMatch."""

from __future__ import annotations


class EduMatchError(Exception):
    """Base class for all custom errors raised by EduMatch."""


# --- 3-layer hierarchy ---

class DomainError(EduMatchError):
    """Base class for domain-level errors."""


class InfrastructureError(EduMatchError):
    """Base class for infrastructure-level errors."""


class ApplicationError(EduMatchError):
    """Base class for application-level errors."""


# --- Infrastructure errors (remote APIs) ---

class NetworkError(InfrastructureError):
    """Raised when a remote API cannot be reached or times out."""


class AuthError(InfrastructureError):
    """Raised when the session is missing, expired or rejected."""


class NotFoundError(InfrastructureError):
    """Raised when the item is already absent (remove) or present (add)."""


class ServerError(InfrastructureError):
    """Raised on 5xx responses or a rejected add/remove acknowledgement."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PartialCatalogFailure(InfrastructureError):
    """Raised when one of the three catalog queries of a refresh fails.

    ``failures`` maps the failed catalog kind to the exception it raised.
    """

    def __init__(self, failures: dict) -> None:
        kinds = ", ".join(str(getattr(kind, "value", kind)) for kind in failures)
        super().__init__(f"Catalog refresh failed for: {kinds}")
        self.failures = dict(failures)


# --- Domain errors ---

class InvalidFilterError(DomainError):
    """Raised when a filter value (e.g. a fee bucket) cannot be parsed."""


class InvalidStatusError(DomainError):
    """Raised for a membership status other than 0 (inactive) or 1 (active)."""


# --- Application errors ---

class IllegalTransitionError(ApplicationError):
    """Raised when the toggle state machine is asked for a forbidden move."""


# --- DI-specific errors ---

class CircularDependencyError(EduMatchError):
    """Raised when a circular dependency is detected during resolution."""


class ResolutionError(EduMatchError):
    """Raised when a dependency cannot be resolved."""


# --- Settings ---

class SettingsError(EduMatchError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""


__all__ = [
    "ApplicationError",
    "AuthError",
    "CircularDependencyError",
    "DomainError",
    "EduMatchError",
    "IllegalTransitionError",
    "InfrastructureError",
    "InvalidFilterError",
    "InvalidStatusError",
    "NetworkError",
    "NotFoundError",
    "PartialCatalogFailure",
    "ResolutionError",
    "ServerError",
    "SettingsError",
    "SettingsLoadError",
    "SettingsValidationError",
]
