"""
Relationship resolution, wildcard filtering and stable sorting of report rows.
"""
from __future__ import annotations

import fnmatch
import logging
from typing import Callable, Iterable, Sequence

from incident_model import IncidentRecord, RelationshipEdge, RelationshipKind, RelationshipSummary, ReportRow
from incident_store import IncidentStoreError

logger = logging.getLogger(__name__)

FetchEdges = Callable[[str], Sequence[RelationshipEdge]]

SORT_KEYS = ("id", "createdDate", "title")
DEFAULT_SORT_KEY = "createdDate"


# ----------------------------
# Relationships
# ----------------------------
def resolve_relationships(incident: IncidentRecord, fetch_edges: FetchEdges) -> RelationshipSummary:
    """First affected user, first assigned-to (store order), count of relates-to edges."""
    buckets: dict[RelationshipKind, list[str]] = {kind: [] for kind in RelationshipKind}
    for edge in fetch_edges(incident.id):
        buckets[edge.kind].append(edge.target_display_name)
    affected = buckets[RelationshipKind.AFFECTED_USER]
    assigned = buckets[RelationshipKind.ASSIGNED_TO]
    return RelationshipSummary(
        affected_user=affected[0] if affected else "",
        assigned_to=assigned[0] if assigned else "",
        related_count=len(buckets[RelationshipKind.RELATES_TO]),
    )


def build_report_rows(incidents: Iterable[IncidentRecord], fetch_edges: FetchEdges) -> list[ReportRow]:
    """Resolve every incident; incidents whose relationships cannot be read are dropped."""
    rows = []
    for incident in incidents:
        try:
            summary = resolve_relationships(incident, fetch_edges)
        except IncidentStoreError as e:
            logger.warning("Skipping incident %s: relationship lookup failed: %s", incident.id, e)
            continue
        rows.append(ReportRow(incident=incident, relationships=summary))
    return rows


# ----------------------------
# Filtering
# ----------------------------
def matches_wildcard(value: str | None, pattern: str | None) -> bool:
    """Case-insensitive glob (* and ?); a pattern without wildcards matches as a substring."""
    if not pattern:
        return True
    if not value:
        return False
    pat = pattern.lower()
    if "*" not in pat and "?" not in pat:
        return pat in value.lower()
    return fnmatch.fnmatchcase(value.lower(), pat)


def filter_rows(rows: Iterable[ReportRow], classification: str | None = None,
                tier_queue: str | None = None) -> list[ReportRow]:
    return [
        r for r in rows
        if matches_wildcard(r.incident.classification, classification)
        and matches_wildcard(r.incident.tier_queue, tier_queue)
    ]


# ----------------------------
# Sorting
# ----------------------------
def _id_key(incident_id: str):
    # Plain ASCII digit ids first in numeric order, then the rest lexicographically.
    if incident_id.isascii() and incident_id.isdigit():
        return (0, int(incident_id), "")
    return (1, 0, incident_id)


_SORT_KEY_FUNCS = {
    "id": lambda r: _id_key(r.incident.id),
    "createdDate": lambda r: r.incident.created_date,
    "title": lambda r: r.incident.title,
}


def sort_rows(rows: Iterable[ReportRow], key: str = DEFAULT_SORT_KEY, descending: bool = False) -> list[ReportRow]:
    """Stable sort in either direction; equal keys keep their input order."""
    try:
        key_func = _SORT_KEY_FUNCS[key]
    except KeyError:
        raise ValueError(f"Unsupported sort key {key!r} (expected one of {', '.join(SORT_KEYS)})") from None
    return sorted(rows, key=key_func, reverse=descending)
