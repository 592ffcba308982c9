#!/usr/bin/env python3
"""
Generate a single-file, filterable HTML report of active incidents.

Usage:
  python generate_incident_report.py out/incidents.html
  python generate_incident_report.py out/incidents.html --lang en --sort id --descending
  python generate_incident_report.py out/incidents.html --classification "Hard*" --tier-queue "*Service Desk*"
  python generate_incident_report.py out/incidents.html --source-json incidents_export.json --csv out/incidents.csv -v

Store connection (REST mode) comes from INCIDENT_STORE_URL, INCIDENT_STORE_USER
and INCIDENT_STORE_TOKEN, optionally via a .env file.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

import pandas as pd

from incident_model import ReportRow, format_created
from incident_pipeline import DEFAULT_SORT_KEY, SORT_KEYS, build_report_rows, filter_rows, sort_rows
from incident_store import IncidentStoreClient, IncidentStoreError, SnapshotStore
from report_i18n import CATALOG, DEFAULT_LANGUAGE
from report_render import assemble_document

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Generate an HTML report of active incidents.")
    p.add_argument("output", help="Path of the HTML file to write")
    p.add_argument("--title", default=None, help="Report title (default: localized 'Active incidents')")
    p.add_argument("--sort", choices=SORT_KEYS, default=DEFAULT_SORT_KEY, help="Sort key (default: %(default)s)")
    p.add_argument("--descending", action="store_true", help="Sort descending instead of ascending")
    p.add_argument("--classification", default=None, help="Wildcard filter on classification (e.g. 'Hard*')")
    p.add_argument("--tier-queue", default=None, help="Wildcard filter on tier/queue")
    p.add_argument("--lang", choices=CATALOG.languages, default=DEFAULT_LANGUAGE, help="UI language (default: %(default)s)")
    p.add_argument("--source-json", default=None, help="Read incidents from a JSON snapshot instead of the store")
    p.add_argument("--csv", default=None, help="Also export the report rows as CSV")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging and a console preview of the rows")
    return p.parse_args(argv)


def open_store(source_json=None):
    if source_json:
        return SnapshotStore(source_json)
    return IncidentStoreClient()


def rows_frame(rows: list[ReportRow]) -> pd.DataFrame:
    """Tabular view of the report rows (console preview and CSV export)."""
    columns = ["id", "title", "affected_user", "assigned_to", "created", "status",
               "classification", "tier_queue", "related_count"]
    return pd.DataFrame(
        [
            {
                "id": r.incident.id,
                "title": r.incident.title,
                "affected_user": r.relationships.affected_user,
                "assigned_to": r.relationships.assigned_to,
                "created": format_created(r.incident.created_date),
                "status": r.incident.status,
                "classification": r.incident.classification,
                "tier_queue": r.incident.tier_queue,
                "related_count": r.relationships.related_count,
            }
            for r in rows
        ],
        columns=columns,
    )


def write_report(path, document: str) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(document, encoding="utf-8")
    return out_path


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        store = open_store(args.source_json)
        print(f"Pulling active incidents (lang={args.lang})...")
        incidents = store.fetch_active_incidents(args.lang)
    except IncidentStoreError as e:
        print(f"Error: could not fetch incidents: {e}", file=sys.stderr)
        return 1
    print(f"Active incidents pulled: {len(incidents)}")

    print("Resolving relationships...")
    rows = build_report_rows(incidents, store.fetch_relationship_edges)
    skipped = len(incidents) - len(rows)
    if skipped:
        print(f"Skipped {skipped} incident(s) with unreadable relationships (see warnings)")

    rows = filter_rows(rows, classification=args.classification, tier_queue=args.tier_queue)
    rows = sort_rows(rows, key=args.sort, descending=args.descending)
    print(f"Rows after filter: {len(rows)} (sorted by {args.sort}, {'descending' if args.descending else 'ascending'})")

    if args.verbose and rows:
        print(rows_frame(rows).head(20).to_string(index=False))

    document = assemble_document(rows, language=args.lang, title=args.title, generated_at=datetime.now())
    out_path = write_report(args.output, document)
    print(f"Written: {out_path}")

    if args.csv:
        csv_path = Path(args.csv)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        rows_frame(rows).to_csv(csv_path, index=False, encoding="utf-8")
        print(f"Written: {csv_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
