"""Schema helpers for the EduMatch settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    ADD_DEBOUNCE_MS,
    CATALOG_PAGE_LIMIT,
    DEFAULT_API_BASE_URL,
    MEMBERSHIP_PAGE_LIMIT,
    MIN_REMOVAL_GRACE_MS,
    REMOVAL_GRACE_MS,
    REQUEST_TIMEOUT_SEC,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "edumatch/settings.schema.json",
    "type": "object",
    "required": ["schema", "api", "wishlist"],
    "properties": {
        "schema": {"const": "edumatch/settings@1"},
        "api": {
            "type": "object",
            "properties": {
                "base_url": {"type": "string", "minLength": 1},
                "timeout_sec": {"type": "number", "exclusiveMinimum": 0},
                "token": {"type": ["string", "null"]},
            },
            "additionalProperties": True,
        },
        "wishlist": {
            "type": "object",
            "properties": {
                "removal_grace_ms": {"type": "integer", "minimum": MIN_REMOVAL_GRACE_MS},
                "add_debounce_ms": {"type": "integer", "minimum": 0},
                "catalog_page_limit": {"type": "integer", "minimum": 1},
                "membership_page_limit": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": True,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                },
            },
            "additionalProperties": True,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "edumatch/settings@1",
    "api": {
        "base_url": DEFAULT_API_BASE_URL,
        "timeout_sec": REQUEST_TIMEOUT_SEC,
        "token": None,
    },
    "wishlist": {
        "removal_grace_ms": REMOVAL_GRACE_MS,
        "add_debounce_ms": ADD_DEBOUNCE_MS,
        "catalog_page_limit": CATALOG_PAGE_LIMIT,
        "membership_page_limit": MEMBERSHIP_PAGE_LIMIT,
    },
    "logging": {"level": "WARNING"},
}

_SECTIONS = ("api", "wishlist", "logging")

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                target = merged.setdefault(key, {})
                for sub_key, sub_value in value.items():
                    target[sub_key] = sub_value
                continue
            merged[key] = value
    level = merged.get("logging", {}).get("level")
    if isinstance(level, str):
        merged["logging"]["level"] = level.upper()
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
