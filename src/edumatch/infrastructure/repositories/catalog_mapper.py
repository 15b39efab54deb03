"""Map explore API rows onto catalog entity snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from dateutil.parser import isoparse

from edumatch.domain.models import (
    CatalogEntity,
    EntityKind,
    Facets,
    Program,
    ResearchPosition,
    Scholarship,
)


def entity_id(row: Dict[str, Any]) -> str:
    """``postId`` is the id the wishlist stores; ``id`` is a display index."""
    value = row.get("postId") or row.get("id")
    return "" if value is None else str(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = isoparse(str(value))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_left(row: Dict[str, Any], now: Optional[datetime] = None) -> int:
    if row.get("daysLeft") is not None:
        try:
            return int(row["daysLeft"])
        except (TypeError, ValueError):
            pass
    deadline = parse_timestamp(row.get("deadline") or row.get("date"))
    if deadline is None:
        return 0
    now = now or datetime.now(timezone.utc)
    return (deadline - now).days


def _text(row: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return str(value)
    return ""


def _common(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": entity_id(row),
        "title": _text(row, "title"),
        "description": _text(row, "description"),
        "country": _text(row, "country"),
        "days_left": days_left(row),
        "match_score": _text(row, "match"),
        "deadline": _text(row, "deadline", "date") or None,
        "application_count": int(row.get("applicationCount") or 0),
    }


def to_program(row: Dict[str, Any]) -> Program:
    return Program(
        **_common(row),
        university=_text(row, "university"),
        field=_text(row, "field"),
        price=_text(row, "price"),
        attendance=_text(row, "attendance"),
        funding=_text(row, "funding"),
    )


def to_scholarship(row: Dict[str, Any]) -> Scholarship:
    return Scholarship(
        **_common(row),
        provider=_text(row, "provider"),
        university=_text(row, "university"),
        essay_required=_text(row, "essayRequired"),
        amount=_text(row, "amount"),
    )


def to_research_position(row: Dict[str, Any]) -> ResearchPosition:
    return ResearchPosition(
        **_common(row),
        institution=_text(row, "institution", "university"),
        professor=_text(row, "professor"),
        field=_text(row, "field"),
        position=_text(row, "position"),
    )


MAPPERS: Dict[EntityKind, Callable[[Dict[str, Any]], CatalogEntity]] = {
    EntityKind.PROGRAM: to_program,
    EntityKind.SCHOLARSHIP: to_scholarship,
    EntityKind.RESEARCH: to_research_position,
}


def to_facets(payload: Optional[Dict[str, Any]]) -> Facets:
    payload = payload or {}

    def values(key: str) -> tuple:
        raw = payload.get(key) or ()
        return tuple(str(item) for item in raw if item)

    return Facets(
        disciplines=values("disciplines"),
        countries=values("countries"),
        degree_levels=values("degreeLevels"),
        attendance_types=values("attendanceTypes"),
    )
