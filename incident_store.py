"""
Ticketing store access: the REST client used in production and a JSON
snapshot reader for offline runs. Both expose fetch_active_incidents(language)
and fetch_relationship_edges(incident_id).
"""
from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

# Load .env if present (keeps token out of terminal history)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

import requests

from incident_model import IncidentRecord, RelationshipEdge, edge_from_raw, incident_from_raw

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "Active"
ACTIVE_STATUS_NAMES = frozenset({"active", "aktiv"})
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class IncidentStoreError(RuntimeError):
    """Any failure talking to (or reading) the ticketing store."""


# ----------------------------
# REST client
# ----------------------------
class IncidentStoreClient:
    def __init__(self, base=None, user=None, token=None, max_attempts=3, backoff=0.5, session=None):
        self.base = base or os.environ.get("INCIDENT_STORE_URL")
        self.user = user or os.environ.get("INCIDENT_STORE_USER")
        self.token = token or os.environ.get("INCIDENT_STORE_TOKEN")
        if not self.base or not self.user or not self.token:
            raise IncidentStoreError(
                "Missing env vars. Set INCIDENT_STORE_URL, INCIDENT_STORE_USER, INCIDENT_STORE_TOKEN."
            )
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff

        self.session = session or requests.Session()
        self.session.auth = (self.user, self.token)
        self.session.headers.update({"Accept": "application/json"})

    def _get(self, path, params=None, timeout=60):
        url = self.base.rstrip("/") + path
        for attempt in range(1, self.max_attempts + 1):
            try:
                r = self.session.get(url, params=params or {}, timeout=timeout)
            except requests.RequestException as e:
                raise IncidentStoreError(f"GET {url} failed: {e}") from e
            if r.status_code in RETRY_STATUSES and attempt < self.max_attempts:
                delay = self.backoff * (2 ** (attempt - 1))
                logger.warning("GET %s returned %s, retrying in %.1fs (attempt %d/%d)",
                               url, r.status_code, delay, attempt, self.max_attempts)
                time.sleep(delay)
                continue
            if r.status_code >= 400:
                raise IncidentStoreError(f"GET {url} failed {r.status_code}: {r.text[:500]}")
            try:
                return r.json()
            except ValueError as e:
                raise IncidentStoreError(f"GET {url} returned invalid JSON: {e}") from e
        raise IncidentStoreError(f"GET {url} failed after {self.max_attempts} attempts")

    def fetch_active_incidents(self, language, page_size=200) -> list[IncidentRecord]:
        """Paginated /api/incidents (status=Active), display names localized by the store."""
        raw_items = []
        next_page_token = None
        while True:
            params = {"status": ACTIVE_STATUS, "lang": language, "pageSize": page_size}
            if next_page_token:
                params["nextPageToken"] = next_page_token
            data = self._get("/api/incidents", params=params)
            items = data.get("items", []) if isinstance(data, dict) else []
            raw_items.extend(items)
            next_page_token = data.get("nextPageToken") if isinstance(data, dict) else None
            if not next_page_token or not items:
                break
        return _coerce_incidents(raw_items)

    def fetch_relationship_edges(self, incident_id) -> list[RelationshipEdge]:
        data = self._get(f"/api/incidents/{quote(str(incident_id), safe='')}/relationships")
        if isinstance(data, dict):
            data = data.get("items", [])
        return _coerce_edges(incident_id, data)


# ----------------------------
# Offline snapshot
# ----------------------------
class SnapshotStore:
    """JSON export: {"incidents": [...], "relationships": {"<id>": [{kind, targetDisplayName}, ...]}}."""

    def __init__(self, path):
        self.path = Path(path)
        try:
            with open(self.path, encoding="utf-8") as f:
                self.data = json.load(f)
        except (OSError, ValueError) as e:
            raise IncidentStoreError(f"Cannot read snapshot {self.path}: {e}") from e
        if not isinstance(self.data, dict):
            raise IncidentStoreError(f"Snapshot {self.path} must hold a JSON object")
        relationships = self.data.get("relationships")
        if relationships is not None and not isinstance(relationships, dict):
            raise IncidentStoreError(f"Snapshot {self.path}: 'relationships' must map incident ids to edge lists")

    def fetch_active_incidents(self, language) -> list[IncidentRecord]:
        raw_items = self.data.get("incidents") or []
        active = [r for r in raw_items if str(r.get("status", "")).strip().lower() in ACTIVE_STATUS_NAMES]
        return _coerce_incidents(active)

    def fetch_relationship_edges(self, incident_id) -> list[RelationshipEdge]:
        relationships = self.data.get("relationships") or {}
        return _coerce_edges(incident_id, relationships.get(str(incident_id)) or [])


def _coerce_incidents(raw_items: list[Any]) -> list[IncidentRecord]:
    incidents = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise IncidentStoreError(f"Malformed incident record: {raw!r}")
        try:
            incidents.append(incident_from_raw(raw))
        except ValueError as e:
            raise IncidentStoreError(str(e)) from e
    return incidents


def _coerce_edges(incident_id, raw_edges: Any) -> list[RelationshipEdge]:
    if not isinstance(raw_edges, list):
        raise IncidentStoreError(f"Malformed relationships for incident {incident_id}: {raw_edges!r}")
    edges = []
    for raw in raw_edges:
        if not isinstance(raw, dict):
            raise IncidentStoreError(f"Malformed relationship for incident {incident_id}: {raw!r}")
        edge = edge_from_raw(raw)
        if edge is None:
            logger.debug("Ignoring relationship kind %r on incident %s", raw.get("kind"), incident_id)
            continue
        edges.append(edge)
    return edges
