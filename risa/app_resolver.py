"""
Application resolution against the installed-app catalog.

Two tiers, in order:
1. Containment: first catalog label that contains the spoken fragment wins.
2. Fuzzy: label with the strictly greatest edit-distance similarity, accepted
   only above APP_MATCH_MIN_SIMILARITY.

The catalog is a snapshot captured once at startup. Apps installed or removed
afterwards stay invisible until restart.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from risa.policy import APP_MATCH_MIN_SIMILARITY
from risa.similarity import similarity

logger = logging.getLogger("RISA.AppResolver")

# Resolved label → label actually looked up in the catalog
APP_NAME_ALIASES = {
    "advanced settings": "settings",
}


@dataclass(frozen=True)
class AppCatalogEntry:
    label: str
    package_id: str


def normalize_app_name(label: str) -> str:
    return APP_NAME_ALIASES.get(label, label)


class ApplicationCatalog(ABC):
    """Installed-application inventory provider."""

    @abstractmethod
    def list_installed(self) -> List[AppCatalogEntry]:
        """Point-in-time snapshot of installed apps (labels lower-cased)."""


class StaticApplicationCatalog(ApplicationCatalog):
    """Catalog backed by a fixed list, e.g. the `apps` section of config.json."""

    def __init__(self, entries: Iterable[AppCatalogEntry]):
        self._entries = [
            AppCatalogEntry(label=e.label.strip().lower(), package_id=e.package_id)
            for e in entries
        ]

    @classmethod
    def from_config(cls, config) -> "StaticApplicationCatalog":
        entries = []
        for item in config.get("apps", []) or []:
            label = str(item.get("label") or "").strip()
            package = str(item.get("package") or "").strip()
            if not label or not package:
                logger.warning(f"[Catalog] Skipping incomplete app entry: {item}")
                continue
            entries.append(AppCatalogEntry(label=label, package_id=package))
        return cls(entries)

    def list_installed(self) -> List[AppCatalogEntry]:
        return list(self._entries)


def resolve(fragment: str, catalog: Sequence[AppCatalogEntry]) -> Optional[str]:
    """Resolve a spoken fragment to a catalog label, or None if unresolved."""
    if not fragment or not catalog:
        return None

    wanted = fragment.casefold()
    for entry in catalog:
        if wanted in entry.label.casefold():
            return entry.label

    best_label = None
    best_score = 0.0
    for entry in catalog:
        score = similarity(fragment, entry.label)
        if score > best_score:
            best_score = score
            best_label = entry.label

    if best_label is not None and best_score > APP_MATCH_MIN_SIMILARITY:
        logger.debug(f"[resolve] Fuzzy match '{fragment}' -> '{best_label}' ({best_score:.2f})")
        return best_label
    return None


class AppResolver:
    """Resolver bound to one catalog snapshot."""

    def __init__(self, entries: Iterable[AppCatalogEntry]):
        self._entries = tuple(entries)
        logger.info(f"[AppResolver] Catalog snapshot: {len(self._entries)} apps")

    @classmethod
    def from_catalog(cls, catalog: ApplicationCatalog) -> "AppResolver":
        return cls(catalog.list_installed())

    @property
    def entries(self) -> tuple:
        return self._entries

    def resolve(self, fragment: str) -> Optional[str]:
        return resolve(fragment, self._entries)

    def package_for(self, label: str) -> Optional[str]:
        """Package id of the first entry whose label equals `label` (case-insensitive)."""
        if not label:
            return None
        wanted = label.lower()
        for entry in self._entries:
            if entry.label.lower() == wanted:
                return entry.package_id
        return None
