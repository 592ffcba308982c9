import logging
from datetime import datetime

import pytest

from conftest import edges, make_incident, make_row
from incident_pipeline import build_report_rows, filter_rows, matches_wildcard, resolve_relationships, sort_rows
from incident_store import IncidentStoreError


# --- relationships ---

def test_resolver_takes_first_edges_in_store_order():
    inc = make_incident(id='IR1')
    fetched = edges(
        ('relatesTo', 'IR9'),
        ('assignedTo', 'Erik Lund'),
        ('affectedUser', 'Anna Berg'),
        ('assignedTo', 'Sara Ek'),
        ('affectedUser', 'Olle Nord'),
        ('relatesTo', 'PR3'),
    )
    summary = resolve_relationships(inc, lambda incident_id: fetched)
    assert summary.affected_user == 'Anna Berg'
    assert summary.assigned_to == 'Erik Lund'
    assert summary.related_count == 2


def test_resolver_without_edges():
    summary = resolve_relationships(make_incident(), lambda incident_id: [])
    assert (summary.affected_user, summary.assigned_to, summary.related_count) == ('', '', 0)


def test_resolver_queries_by_incident_id():
    seen = []
    resolve_relationships(make_incident(id='IR77'), lambda incident_id: seen.append(incident_id) or [])
    assert seen == ['IR77']


def test_failed_lookup_drops_only_that_incident(caplog):
    def fetch(incident_id):
        if incident_id == 'IR2':
            raise IncidentStoreError('timeout')
        return edges(('affectedUser', f'user-{incident_id}'))

    incidents = [make_incident(id='IR1'), make_incident(id='IR2'), make_incident(id='IR3')]
    with caplog.at_level(logging.WARNING, logger='incident_pipeline'):
        rows = build_report_rows(incidents, fetch)
    assert [r.incident.id for r in rows] == ['IR1', 'IR3']
    assert rows[1].relationships.affected_user == 'user-IR3'
    assert 'IR2' in caplog.text and 'timeout' in caplog.text


def test_unexpected_errors_propagate():
    def fetch(incident_id):
        raise KeyError('bug')

    with pytest.raises(KeyError):
        build_report_rows([make_incident()], fetch)


# --- filtering ---

@pytest.mark.parametrize('value,pattern,expected', [
    ('Hardware', None, True),
    ('Hardware', '', True),
    ('', None, True),
    ('Hardware', 'hard*', True),
    ('Hardware', 'HARDWARE', True),
    ('Hardware', 'ware', True),
    ('Hardware', '*ware', True),
    ('Hardware', 'Soft*', False),
    ('Hardware', 'H?rdware', True),
    ('', '*', False),
    (None, 'hard*', False),
])
def test_matches_wildcard(value, pattern, expected):
    assert matches_wildcard(value, pattern) is expected


def test_filter_rows_conjunctive_and_excludes_absent_fields():
    rows = [
        make_row(id='1', classification='Hardware', tier_queue='Tier 1'),
        make_row(id='2', classification='Software', tier_queue='Tier 1'),
        make_row(id='3', classification='', tier_queue='Tier 1'),
        make_row(id='4', classification='Hardware', tier_queue=''),
    ]
    assert [r.incident.id for r in filter_rows(rows, classification='hard*')] == ['1', '4']
    assert [r.incident.id for r in filter_rows(rows, classification='hard*', tier_queue='tier*')] == ['1']
    assert [r.incident.id for r in filter_rows(rows)] == ['1', '2', '3', '4']


# --- sorting ---

def _ids(rows):
    return [r.incident.id for r in rows]


def test_sort_by_numeric_id():
    rows = [make_row(id='10'), make_row(id='9'), make_row(id='100')]
    assert _ids(sort_rows(rows, 'id')) == ['9', '10', '100']
    assert _ids(sort_rows(rows, 'id', descending=True)) == ['100', '10', '9']


def test_sort_by_mixed_ids_is_total():
    rows = [make_row(id='IR2'), make_row(id='5'), make_row(id='IR10'), make_row(id='3')]
    assert _ids(sort_rows(rows, 'id')) == ['3', '5', 'IR10', 'IR2']


def test_only_plain_ascii_digit_ids_sort_numerically():
    rows = [make_row(id='IR1'), make_row(id='1_0'), make_row(id='١٢'), make_row(id=' 7'), make_row(id='9')]
    assert _ids(sort_rows(rows, 'id')) == ['9', ' 7', '1_0', 'IR1', '١٢']


def test_sort_by_created_date():
    rows = [
        make_row(id='a', created=datetime(2024, 3, 2, 8, 0)),
        make_row(id='b', created=datetime(2024, 1, 1, 8, 0)),
        make_row(id='c', created=datetime(2024, 3, 2, 7, 59)),
    ]
    assert _ids(sort_rows(rows, 'createdDate')) == ['b', 'c', 'a']
    assert _ids(sort_rows(rows, 'createdDate', descending=True)) == ['a', 'c', 'b']


def test_sort_by_title():
    rows = [make_row(id='1', title='VPN'), make_row(id='2', title='Mail'), make_row(id='3', title='Printer')]
    assert _ids(sort_rows(rows, 'title')) == ['2', '3', '1']


@pytest.mark.parametrize('descending', [False, True])
def test_sort_is_stable_for_equal_keys(descending):
    same = datetime(2024, 3, 5, 9, 30)
    rows = [
        make_row(id='x', title='B', created=same),
        make_row(id='y', title='A', created=datetime(2024, 1, 1)),
        make_row(id='z', title='B', created=same),
        make_row(id='w', title='B', created=same),
    ]
    by_title = _ids(sort_rows(rows, 'title', descending=descending))
    b_ids = [i for i in by_title if i != 'y']
    assert b_ids == ['x', 'z', 'w']
    by_date = _ids(sort_rows(rows, 'createdDate', descending=descending))
    assert [i for i in by_date if i != 'y'] == ['x', 'z', 'w']


@pytest.mark.parametrize('key', ['id', 'createdDate', 'title'])
def test_sort_is_idempotent(key):
    rows = [make_row(id=str(n), title=t, created=datetime(2024, 1, n))
            for n, t in [(3, 'c'), (1, 'a'), (2, 'b'), (4, 'a')]]
    once = sort_rows(rows, key)
    assert sort_rows(once, key) == once
    assert sort_rows(rows, key) == once


def test_unsupported_sort_key():
    with pytest.raises(ValueError, match='status'):
        sort_rows([make_row()], 'status')
