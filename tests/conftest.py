import json
from datetime import datetime
from html.parser import HTMLParser

import pytest

from incident_model import IncidentRecord, RelationshipEdge, RelationshipKind, RelationshipSummary, ReportRow


def make_incident(id="IR1", title="Printer offline", created=datetime(2024, 3, 5, 9, 30), status="Active",
                  classification="Hardware", tier_queue="Service Desk"):
    return IncidentRecord(id=id, title=title, created_date=created, status=status,
                          classification=classification, tier_queue=tier_queue)


def make_row(affected_user="Anna Berg", assigned_to="Erik Lund", related_count=0, **incident_fields):
    return ReportRow(
        incident=make_incident(**incident_fields),
        relationships=RelationshipSummary(affected_user=affected_user, assigned_to=assigned_to,
                                          related_count=related_count),
    )


def edges(*pairs):
    return [RelationshipEdge(kind=RelationshipKind(kind), target_display_name=name) for kind, name in pairs]


class ReportParser(HTMLParser):
    """Collects <html lang>, <title> and the body rows of the incident table."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.lang = None
        self.title = ""
        self.rows = []
        self.selects = {}
        self._in_title = False
        self._in_tbody = False
        self._in_cell = False
        self._select = None

    def handle_starttag(self, tag, attrs):
        attrs = dict(attrs)
        if tag == "html":
            self.lang = attrs.get("lang")
        elif tag == "title":
            self._in_title = True
        elif tag == "tbody":
            self._in_tbody = True
        elif tag == "tr" and self._in_tbody:
            self.rows.append({"class": attrs.get("class", ""), "attrs": attrs, "cells": []})
        elif tag == "td" and self._in_tbody:
            self.rows[-1]["cells"].append("")
            self._in_cell = True
        elif tag == "select":
            self._select = attrs.get("id")
            self.selects[self._select] = []
        elif tag == "option" and self._select:
            self.selects[self._select].append(attrs.get("value"))

    def handle_endtag(self, tag):
        if tag == "title":
            self._in_title = False
        elif tag == "tbody":
            self._in_tbody = False
        elif tag == "td":
            self._in_cell = False
        elif tag == "select":
            self._select = None

    def handle_data(self, data):
        if self._in_title:
            self.title += data
        elif self._in_cell and self.rows and self.rows[-1]["cells"]:
            self.rows[-1]["cells"][-1] += data


def parse_report(document):
    parser = ReportParser()
    parser.feed(document)
    parser.close()
    return parser


@pytest.fixture
def snapshot_file(tmp_path):
    def _write(incidents, relationships=None):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"incidents": incidents, "relationships": relationships or {}}),
                        encoding="utf-8")
        return path
    return _write
