"""
WriteUp Backend: Privacy Gate
=============================

What:  Keeps sensitive selections from ever reaching a third-party provider.
How:   Two checks, both run by EnhancementService before orchestration:
         1. Excluded applications: text captured from e.g. a password manager
            is rejected outright.
         2. Sensitive data: card-number-like and SSN-like digit groups.

Excluded-app list lifecycle:
    - Seeded from settings.excluded_apps at construction
    - load() (called from the lifespan) replaces it with the saved list, if any
    - Every edit is written through to the config store, so it survives restarts
"""

import logging
import re
from typing import Iterable, List, Optional

from writeup.config import settings
from writeup.services.config_store import ConfigStore, config_store

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS = (
    # 16 digits in groups of four, optionally separated by spaces or hyphens
    re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
    # US social security number: 123-45-6789
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
)


def _dedupe(apps: Iterable[str]) -> List[str]:
    # Keeps first occurrence order
    return list(dict.fromkeys(apps))


class PrivacyGate:
    """
    Sensitive-data check plus the excluded-app list.

    Without a store the list lives only in memory (tests, embedders).
    """

    def __init__(
        self,
        excluded_apps: Optional[Iterable[str]] = None,
        store: Optional[ConfigStore] = None,
    ) -> None:
        self._store = store
        self._excluded_apps: List[str] = _dedupe(
            settings.excluded_apps_list if excluded_apps is None else excluded_apps
        )

    def contains_sensitive_data(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in SENSITIVE_PATTERNS)

    # ── Excluded applications ─────────────────────────────────────────────

    async def load(self) -> None:
        """Replaces the seeded list with the saved one, if a list was ever saved."""
        if self._store is None:
            return
        saved = await self._store.get_excluded_apps()
        if saved is not None:
            self._excluded_apps = _dedupe(saved)
            logger.info("Loaded %d excluded app(s)", len(self._excluded_apps))

    def get_excluded_apps(self) -> List[str]:
        return list(self._excluded_apps)

    async def add_excluded_app(self, app_name: str) -> None:
        if app_name in self._excluded_apps:
            return
        await self._save(self._excluded_apps + [app_name])
        logger.info("Added %s to excluded apps", app_name)

    async def remove_excluded_app(self, app_name: str) -> None:
        if app_name not in self._excluded_apps:
            return
        await self._save([app for app in self._excluded_apps if app != app_name])
        logger.info("Removed %s from excluded apps", app_name)

    async def set_excluded_apps(self, apps: Iterable[str]) -> None:
        await self._save(_dedupe(apps))

    async def _save(self, apps: List[str]) -> None:
        # Persist first: a failed write leaves the in-memory list unchanged
        if self._store is not None:
            await self._store.save_excluded_apps(apps)
        self._excluded_apps = apps

    def should_process_text(self, app_name: Optional[str]) -> bool:
        """False if the text came from an excluded application."""
        if not app_name:
            return True
        return app_name not in self._excluded_apps


# ── Singleton Instance ────────────────────────────────────────────────────
privacy_gate = PrivacyGate(store=config_store)
