"""
HTML rendering for the incident report: master/detail row pairs, the inline
client script (toggle, expand/collapse all, filter dropdowns) and the single
self-contained document around them.
"""
from __future__ import annotations

import html
import json
from datetime import datetime
from typing import Iterable

from incident_model import ReportRow, format_created
from report_i18n import CATALOG, LocalizationCatalog

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
COLLAPSED_GLYPH = "+"
EXPANDED_GLYPH = "–"

# (column key, master-row data attribute, client dataset property, select id)
FILTER_FIELDS = [
    ("column.classification", "data-classification", "classification", "filter-classification"),
    ("column.affectedUser", "data-affected-user", "affectedUser", "filter-affected-user"),
    ("column.assignedTo", "data-assigned-to", "assignedTo", "filter-assigned-to"),
    ("column.tierQueue", "data-tier-queue", "tierQueue", "filter-tier-queue"),
]

COLUMN_KEYS = [
    "column.id", "column.title", "column.affectedUser", "column.assignedTo", "column.created",
    "column.status", "column.classification", "column.tierQueue", "column.related",
]
# Toggle cell + one cell per column.
COLUMN_COUNT = len(COLUMN_KEYS) + 1


def esc(value) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def js_literal(value) -> str:
    """JSON-encode for inline <script>; '</' is split so text can never close the tag."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


# ----------------------------
# Rows
# ----------------------------
def render_row(row: ReportRow, language: str, catalog: LocalizationCatalog = CATALOG) -> str:
    """Master row plus its collapsed detail row (always the master's next sibling)."""
    inc = row.incident
    rel = row.relationships
    t = lambda key: esc(catalog.lookup(key, language))
    created = format_created(inc.created_date)
    color = row.status_color
    status_badge = f'<span class="badge" style="background:{color}">{esc(inc.status)}</span>'
    pill_class = "pill pill-zero" if rel.related_count == 0 else "pill"
    related_pill = f'<span class="{pill_class}">{rel.related_count}</span>'

    attrs = {
        "data-classification": inc.classification,
        "data-affected-user": rel.affected_user,
        "data-assigned-to": rel.assigned_to,
        "data-tier-queue": inc.tier_queue,
    }
    attr_text = " ".join(f'{name}="{esc(value)}"' for name, value in attrs.items())

    master = (
        f'<tr class="incident-row" {attr_text}>'
        f'<td><button type="button" class="toggle" aria-expanded="false" aria-label="{t("toggle.label")}">{COLLAPSED_GLYPH}</button></td>'
        f'<td class="id">{esc(inc.id)}</td>'
        f'<td>{esc(inc.title)}</td>'
        f'<td>{esc(rel.affected_user)}</td>'
        f'<td>{esc(rel.assigned_to)}</td>'
        f'<td class="created">{created}</td>'
        f'<td>{status_badge}</td>'
        f'<td>{esc(inc.classification)}</td>'
        f'<td>{esc(inc.tier_queue)}</td>'
        f'<td>{related_pill}</td>'
        f'</tr>'
    )

    details = [
        ("column.id", esc(inc.id)),
        ("column.title", esc(inc.title)),
        ("column.affectedUser", esc(rel.affected_user)),
        ("column.assignedTo", esc(rel.assigned_to)),
        ("column.created", created),
        ("column.status", status_badge),
        ("column.classification", esc(inc.classification)),
        ("column.tierQueue", esc(inc.tier_queue)),
        ("column.related", related_pill),
    ]
    detail = (
        f'<tr class="detail-row" hidden><td colspan="{COLUMN_COUNT}"><dl class="details">'
        + "".join(f"<dt>{t(key)}</dt><dd>{value}</dd>" for key, value in details)
        + "</dl></td></tr>"
    )
    return master + "\n" + detail


def render_rows(rows: Iterable[ReportRow], language: str, catalog: LocalizationCatalog = CATALOG) -> list[str]:
    return [render_row(r, language, catalog) for r in rows]


# ----------------------------
# Client script
# ----------------------------
def build_client_script(language: str, catalog: LocalizationCatalog = CATALOG) -> str:
    """Inline script; all state lives in the DOM the rows were rendered into."""
    filters = [[prop, select_id] for _, _, prop, select_id in FILTER_FIELDS]
    return f"""(function () {{
  'use strict';
  const LANG = {js_literal(language)};
  const SHOW_ALL = {js_literal(catalog.lookup('filter.showAll', language))};
  const FILTERS = {js_literal(filters)};
  const COLLAPSED = {js_literal(COLLAPSED_GLYPH)};
  const EXPANDED = {js_literal(EXPANDED_GLYPH)};
  const tbody = document.getElementById('incident-rows');
  if (!tbody) return;

  function masterRows() {{
    return Array.from(tbody.querySelectorAll('tr.incident-row'));
  }}
  function norm(v) {{
    return (v || '').trim().toLowerCase();
  }}
  function isExpanded(row) {{
    const btn = row.querySelector('button.toggle');
    return !!btn && btn.getAttribute('aria-expanded') === 'true';
  }}
  function setExpanded(row, expanded) {{
    const detail = row.nextElementSibling;
    if (detail && detail.classList.contains('detail-row')) detail.hidden = !expanded;
    const btn = row.querySelector('button.toggle');
    if (btn) {{
      btn.setAttribute('aria-expanded', expanded ? 'true' : 'false');
      btn.textContent = expanded ? EXPANDED : COLLAPSED;
    }}
  }}

  function populateFilters() {{
    const rows = masterRows();
    FILTERS.forEach(([prop, selectId]) => {{
      const select = document.getElementById(selectId);
      if (!select) return;
      // Keyed like applyFilters compares; the first spelling seen is shown.
      const values = new Map();
      rows.forEach(row => {{
        const v = (row.dataset[prop] || '').trim();
        if (v && !values.has(norm(v))) values.set(norm(v), v);
      }});
      while (select.firstChild) select.removeChild(select.firstChild);
      const all = document.createElement('option');
      all.value = '';
      all.textContent = SHOW_ALL;
      select.appendChild(all);
      Array.from(values.values()).sort((a, b) => a.localeCompare(b, LANG)).forEach(v => {{
        const opt = document.createElement('option');
        opt.value = v;
        opt.textContent = v;
        select.appendChild(opt);
      }});
      select.addEventListener('change', applyFilters);
    }});
  }}

  function applyFilters() {{
    const selected = FILTERS.map(([prop, selectId]) => {{
      const select = document.getElementById(selectId);
      return [prop, select ? norm(select.value) : ''];
    }});
    masterRows().forEach(row => {{
      const visible = selected.every(([prop, value]) => value === '' || norm(row.dataset[prop]) === value);
      if (!visible) setExpanded(row, false);
      row.hidden = !visible;
    }});
  }}

  tbody.addEventListener('click', e => {{
    const btn = e.target.closest('button.toggle');
    if (!btn || !tbody.contains(btn)) return;
    const row = btn.closest('tr');
    setExpanded(row, !isExpanded(row));
  }});
  const expandAll = document.getElementById('expand-all');
  if (expandAll) expandAll.addEventListener('click', () => {{
    masterRows().forEach(row => {{ if (!row.hidden) setExpanded(row, true); }});
  }});
  const collapseAll = document.getElementById('collapse-all');
  if (collapseAll) collapseAll.addEventListener('click', () => {{
    masterRows().forEach(row => setExpanded(row, false));
  }});

  populateFilters();
}})();"""


# ----------------------------
# Document
# ----------------------------
_STYLE = """
    :root { --bg: #f6f8fa; --card: #ffffff; --text: #1f2328; --muted: #656d76; --accent: #0969da; --border: #d0d7de; }
    * { box-sizing: border-box; }
    body { font-family: 'Segoe UI', system-ui, sans-serif; background: var(--bg); color: var(--text); margin: 0; padding: 1rem; line-height: 1.5; }
    h1 { font-size: 1.5rem; margin: 0 0 0.5rem; }
    .meta { color: var(--muted); font-size: 0.875rem; margin-bottom: 1rem; }
    .toolbar { display: flex; flex-wrap: wrap; align-items: flex-end; gap: 0.5rem 0.75rem; margin-bottom: 1rem; padding: 0.6rem; background: var(--card); border-radius: 8px; border: 1px solid var(--border); }
    .toolbar button { background: var(--accent); color: #ffffff; border: none; padding: 0.4rem 0.8rem; border-radius: 6px; cursor: pointer; font-weight: 600; font-size: 0.8rem; }
    .toolbar button:hover { opacity: 0.85; }
    .toolbar label { display: inline-flex; flex-direction: column; font-size: 0.75rem; color: var(--muted); }
    .toolbar select { min-width: 160px; padding: 0.3rem; border: 1px solid var(--border); border-radius: 6px; background: var(--card); color: var(--text); }
    .table-wrap { overflow-x: auto; background: var(--card); border: 1px solid var(--border); border-radius: 8px; }
    table { width: 100%; border-collapse: collapse; font-size: 0.85rem; }
    th, td { padding: 0.4rem 0.6rem; text-align: left; border-bottom: 1px solid var(--border); vertical-align: top; }
    th { color: var(--muted); font-weight: 600; white-space: nowrap; }
    td.id, td.created { white-space: nowrap; font-variant-numeric: tabular-nums; }
    button.toggle { width: 1.6rem; height: 1.6rem; border: 1px solid var(--border); border-radius: 4px; background: var(--card); cursor: pointer; font-weight: 700; }
    .badge { display: inline-block; padding: 0.05rem 0.5rem; border-radius: 999px; color: #ffffff; font-size: 0.75rem; font-weight: 600; }
    .pill { display: inline-block; min-width: 1.6rem; text-align: center; padding: 0 0.4rem; border-radius: 999px; background: var(--accent); color: #ffffff; font-size: 0.75rem; }
    .pill-zero { background: transparent; color: var(--muted); border: 1px solid var(--border); }
    tr.detail-row td { background: var(--bg); }
    dl.details { display: grid; grid-template-columns: max-content 1fr; gap: 0.2rem 1rem; margin: 0.25rem 0; }
    dl.details dt { color: var(--muted); font-weight: 600; }
    dl.details dd { margin: 0; }
"""


def assemble_document(rows: Iterable[ReportRow], *, language: str, title: str | None = None,
                      generated_at: datetime | None = None, catalog: LocalizationCatalog = CATALOG) -> str:
    """Render rows in the given order into one self-contained HTML document."""
    rows = list(rows)
    t = lambda key: esc(catalog.lookup(key, language))
    report_title = title or catalog.lookup("report.title", language)
    generated = (generated_at or datetime.now()).strftime(TIMESTAMP_FORMAT)
    count = len(rows)

    document_title = catalog.format("report.documentTitle", language, title=report_title, count=count)
    summary = catalog.format("report.summary", language, count=count, timestamp=generated)
    header_cells = '<th scope="col"></th>' + "".join(f'<th scope="col">{t(key)}</th>' for key in COLUMN_KEYS)
    filter_controls = "\n".join(
        f'    <label>{t(label_key)}<select id="{select_id}"><option value="">{t("filter.showAll")}</option></select></label>'
        for label_key, _, _, select_id in FILTER_FIELDS
    )
    body_rows = "\n".join(render_rows(rows, language, catalog))

    return f"""<!DOCTYPE html>
<html lang="{esc(language)}">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta name="generated" content="{generated}">
  <title>{esc(document_title)}</title>
  <style>{_STYLE}  </style>
</head>
<body>
  <h1>{esc(report_title)}</h1>
  <p class="meta" id="summary" data-count="{count}">{esc(summary)}</p>

  <div class="toolbar" role="toolbar" aria-label="{t('filter.heading')}">
    <button type="button" id="expand-all">{t('toolbar.expandAll')}</button>
    <button type="button" id="collapse-all">{t('toolbar.collapseAll')}</button>
{filter_controls}
  </div>

  <div class="table-wrap">
    <table id="incident-table">
      <thead><tr>{header_cells}</tr></thead>
      <tbody id="incident-rows">
{body_rows}
      </tbody>
    </table>
  </div>

  <script>
{build_client_script(language, catalog)}
  </script>
</body>
</html>
"""
