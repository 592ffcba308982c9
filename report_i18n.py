"""
Label table for the incident report.
Every key must carry a string for every supported language; the default
catalog is validated on import so a gap fails at startup, not mid-render.
"""
from __future__ import annotations

from typing import Any, Mapping

SUPPORTED_LANGUAGES = ("sv", "en")
DEFAULT_LANGUAGE = "sv"


class LocalizationError(LookupError):
    """Catalog defect: unknown key, unsupported language or incomplete table."""


ENTRIES: dict[str, dict[str, str]] = {
    "report.title": {"sv": "Aktiva incidenter", "en": "Active incidents"},
    "report.documentTitle": {"sv": "{title} ({count})", "en": "{title} ({count})"},
    "report.summary": {
        "sv": "{count} aktiva incidenter. Genererad {timestamp}.",
        "en": "{count} active incidents. Generated {timestamp}.",
    },
    "toolbar.expandAll": {"sv": "Expandera alla", "en": "Expand all"},
    "toolbar.collapseAll": {"sv": "Fäll ihop alla", "en": "Collapse all"},
    "filter.heading": {"sv": "Filter", "en": "Filters"},
    "filter.showAll": {"sv": "Visa alla", "en": "Show all"},
    "toggle.label": {"sv": "Visa eller dölj detaljer", "en": "Show or hide details"},
    "column.id": {"sv": "ID", "en": "ID"},
    "column.title": {"sv": "Titel", "en": "Title"},
    "column.affectedUser": {"sv": "Berörd användare", "en": "Affected user"},
    "column.assignedTo": {"sv": "Tilldelad", "en": "Assigned to"},
    "column.created": {"sv": "Skapad", "en": "Created"},
    "column.status": {"sv": "Status", "en": "Status"},
    "column.classification": {"sv": "Klassificering", "en": "Classification"},
    "column.tierQueue": {"sv": "Supportgrupp", "en": "Tier/Queue"},
    "column.related": {"sv": "Relaterade", "en": "Related"},
}


class LocalizationCatalog:
    def __init__(self, entries: Mapping[str, Mapping[str, str]], languages=SUPPORTED_LANGUAGES):
        self._entries = {key: dict(per_lang) for key, per_lang in entries.items()}
        self._languages = tuple(languages)
        self.validate()

    @property
    def languages(self) -> tuple[str, ...]:
        return self._languages

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def validate(self) -> None:
        """Raise LocalizationError listing every (key, language) without a string."""
        missing = []
        for key in sorted(self._entries):
            for lang in self._languages:
                value = self._entries[key].get(lang)
                if not isinstance(value, str) or not value:
                    missing.append(f"{key}[{lang}]")
        if missing:
            raise LocalizationError("Incomplete localization entries: " + ", ".join(missing))

    def lookup(self, key: str, language: str) -> str:
        if language not in self._languages:
            raise LocalizationError(f"Unsupported language {language!r} (supported: {', '.join(self._languages)})")
        try:
            return self._entries[key][language]
        except KeyError:
            raise LocalizationError(f"Unknown localization key {key!r}") from None

    def format(self, key: str, language: str, **values: Any) -> str:
        return self.lookup(key, language).format(**values)


CATALOG = LocalizationCatalog(ENTRIES)
