"""
Normalized shapes for incidents pulled from the ticketing store, plus the
derived per-incident relationship summary and the render-time row.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from dateutil import parser as dtparser

CREATED_FORMAT = "%Y-%m-%d %H:%M"

# Keys are lower-cased status display names in both report languages.
STATUS_COLORS = {
    "active": "#f59e0b",
    "aktiv": "#f59e0b",
    "resolved": "#16a34a",
    "löst": "#16a34a",
    "closed": "#6b7280",
    "stängd": "#6b7280",
}
FALLBACK_STATUS_COLOR = "#d97706"


class RelationshipKind(str, Enum):
    RELATES_TO = "relatesTo"
    AFFECTED_USER = "affectedUser"
    ASSIGNED_TO = "assignedTo"


@dataclass(frozen=True)
class RelationshipEdge:
    kind: RelationshipKind
    target_display_name: str


@dataclass(frozen=True)
class IncidentRecord:
    id: str
    title: str
    created_date: datetime
    status: str
    classification: str = ""
    tier_queue: str = ""


@dataclass(frozen=True)
class RelationshipSummary:
    affected_user: str = ""
    assigned_to: str = ""
    related_count: int = 0


@dataclass(frozen=True)
class ReportRow:
    incident: IncidentRecord
    relationships: RelationshipSummary

    @property
    def status_color(self) -> str:
        return status_color(self.incident.status)


def status_color(status: str | None) -> str:
    return STATUS_COLORS.get((status or "").strip().lower(), FALLBACK_STATUS_COLOR)


def parse_dt(value: Any) -> datetime | None:
    """Parse an ISO string (or pass through a datetime) into naive local wall-clock time."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = dtparser.isoparse(str(value))
        except (TypeError, ValueError):
            try:
                dt = dtparser.parse(str(value))
            except (TypeError, ValueError, OverflowError):
                return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_created(dt: datetime) -> str:
    return dt.strftime(CREATED_FORMAT)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def incident_from_raw(raw: dict[str, Any]) -> IncidentRecord:
    """Coerce one store record ({id, title, createdDate, status, classification, tierQueue})."""
    incident_id = _text(raw.get("id"))
    if not incident_id:
        raise ValueError(f"Incident record without id: {raw!r}")
    created = parse_dt(raw.get("createdDate"))
    if created is None:
        raise ValueError(f"Incident {incident_id} has no usable createdDate: {raw.get('createdDate')!r}")
    return IncidentRecord(
        id=incident_id,
        title=_text(raw.get("title")),
        created_date=created,
        status=_text(raw.get("status")),
        classification=_text(raw.get("classification")),
        tier_queue=_text(raw.get("tierQueue")),
    )


def edge_from_raw(raw: dict[str, Any]) -> RelationshipEdge | None:
    """Map a store relationship record; kinds outside the closed set give None."""
    try:
        kind = RelationshipKind(raw.get("kind"))
    except ValueError:
        return None
    return RelationshipEdge(kind=kind, target_display_name=_text(raw.get("targetDisplayName")))
