"""
WriteUp Backend: Provider Configuration Store
=============================================

What:  The persisted list of ProviderDescriptors, behind one small interface.
Why:   The registry and orchestrator must read the latest saved credentials on
       every call. Injecting the store (instead of importing a global) keeps
       them testable with an in-memory list.
How:   ConfigStore defines the async operations below. DatabaseConfigStore
       keeps descriptors in the `providers` table and the excluded-app list
       in `app_settings`; InMemoryConfigStore keeps them in lists and is used
       by tests and embedders.

Read semantics:
    Every read returns fresh copies. Mutating a returned descriptor never
    changes the store; only save_provider() does.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from writeup.database import async_session_factory
from writeup.exceptions import DatabaseError
from writeup.models.app_setting import AppSetting
from writeup.models.provider import ProviderConfig
from writeup.schemas.provider import (
    DEFAULT_PROVIDERS,
    ProviderDescriptor,
    ProviderUpdate,
    default_descriptor,
)

logger = logging.getLogger(__name__)

EXCLUDED_APPS_KEY = "excluded_apps"


def apply_update(descriptor: ProviderDescriptor, update: ProviderUpdate) -> ProviderDescriptor:
    """Returns a copy of `descriptor` with the fields `update` explicitly sets."""
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    return descriptor.model_copy(update=changes)


class ConfigStore(ABC):
    """Source of truth for ProviderDescriptors."""

    @abstractmethod
    async def get_providers(self) -> List[ProviderDescriptor]:
        """All descriptors, in the order they were first saved."""
        ...

    @abstractmethod
    async def get_provider(self, name: str) -> Optional[ProviderDescriptor]:
        ...

    @abstractmethod
    async def save_provider(self, name: str, update: ProviderUpdate) -> ProviderDescriptor:
        """
        Partial update of one descriptor.

        A name that is not stored yet is created first: from the built-in
        defaults if it is a known backend, otherwise disabled with the next
        free priority.
        """
        ...

    @abstractmethod
    async def ensure_defaults(self) -> None:
        """Inserts the default descriptor for every known backend that is missing."""
        ...

    @abstractmethod
    async def get_excluded_apps(self) -> Optional[List[str]]:
        """The saved excluded-app list, or None if it was never saved."""
        ...

    @abstractmethod
    async def save_excluded_apps(self, apps: List[str]) -> None:
        ...


class InMemoryConfigStore(ConfigStore):
    """List-backed store; starts from the defaults unless given descriptors."""

    def __init__(self, descriptors: Optional[List[ProviderDescriptor]] = None) -> None:
        source = DEFAULT_PROVIDERS if descriptors is None else descriptors
        self._descriptors: List[ProviderDescriptor] = [d.model_copy() for d in source]
        self._excluded_apps: Optional[List[str]] = None

    async def get_providers(self) -> List[ProviderDescriptor]:
        return [d.model_copy() for d in self._descriptors]

    async def get_provider(self, name: str) -> Optional[ProviderDescriptor]:
        for descriptor in self._descriptors:
            if descriptor.name == name:
                return descriptor.model_copy()
        return None

    async def save_provider(self, name: str, update: ProviderUpdate) -> ProviderDescriptor:
        for index, descriptor in enumerate(self._descriptors):
            if descriptor.name == name:
                saved = apply_update(descriptor, update)
                self._descriptors[index] = saved
                return saved.model_copy()

        base = default_descriptor(name)
        if base is None:
            next_priority = max((d.priority for d in self._descriptors), default=0) + 1
            base = ProviderDescriptor(name=name, priority=next_priority)
        saved = apply_update(base, update)
        self._descriptors.append(saved)
        return saved.model_copy()

    async def ensure_defaults(self) -> None:
        known = {d.name for d in self._descriptors}
        for descriptor in DEFAULT_PROVIDERS:
            if descriptor.name not in known:
                self._descriptors.append(descriptor.model_copy())

    async def get_excluded_apps(self) -> Optional[List[str]]:
        return None if self._excluded_apps is None else list(self._excluded_apps)

    async def save_excluded_apps(self, apps: List[str]) -> None:
        self._excluded_apps = list(apps)


class DatabaseConfigStore(ConfigStore):
    """
    SQL-backed store on the `providers` table.

    Each operation opens its own short session from the factory: the
    orchestrator runs outside any request-scoped session, and a save must be
    visible to the very next orchestration call.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _to_descriptor(row: ProviderConfig) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=row.name,
            api_key=row.api_key or "",
            model=row.model or "",
            enabled=row.enabled,
            priority=row.priority,
        )

    async def get_providers(self) -> List[ProviderDescriptor]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ProviderConfig).order_by(ProviderConfig.position)
                )
                return [self._to_descriptor(row) for row in result.scalars().all()]
        except Exception as e:
            logger.error("Database error loading provider config: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load provider configuration.",
                context={"error_type": type(e).__name__},
            )

    async def get_provider(self, name: str) -> Optional[ProviderDescriptor]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ProviderConfig, name)
                return self._to_descriptor(row) if row else None
        except Exception as e:
            logger.error("Database error loading provider %s: %s", name, str(e))
            raise DatabaseError(
                message="Could not load provider configuration.",
                context={"provider": name, "error_type": type(e).__name__},
            )

    async def save_provider(self, name: str, update: ProviderUpdate) -> ProviderDescriptor:
        try:
            async with self._session_factory() as session:
                row = await session.get(ProviderConfig, name)
                if row is None:
                    row = await self._new_row(session, name)
                    session.add(row)

                saved = apply_update(self._to_descriptor(row), update)
                row.api_key = saved.api_key
                row.model = saved.model
                row.enabled = saved.enabled
                row.priority = saved.priority

                await session.commit()
                logger.info(
                    "Provider %s saved (enabled=%s, priority=%d, has_key=%s)",
                    name,
                    saved.enabled,
                    saved.priority,
                    bool(saved.api_key),
                )
                return saved
        except Exception as e:
            logger.error("Database error saving provider %s: %s", name, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save provider configuration.",
                context={"provider": name, "error_type": type(e).__name__},
            )

    async def _new_row(self, session: AsyncSession, name: str) -> ProviderConfig:
        max_position = (await session.execute(select(func.max(ProviderConfig.position)))).scalar()
        position = 0 if max_position is None else max_position + 1

        base = default_descriptor(name)
        if base is None:
            max_priority = (await session.execute(select(func.max(ProviderConfig.priority)))).scalar()
            base = ProviderDescriptor(name=name, priority=(max_priority or 0) + 1)

        return ProviderConfig(
            name=base.name,
            api_key=base.api_key,
            model=base.model,
            enabled=base.enabled,
            priority=base.priority,
            position=position,
        )

    async def ensure_defaults(self) -> None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(ProviderConfig.name))
                existing = set(result.scalars().all())

                max_position = (
                    await session.execute(select(func.max(ProviderConfig.position)))
                ).scalar()
                position = 0 if max_position is None else max_position + 1

                added = 0
                for descriptor in DEFAULT_PROVIDERS:
                    if descriptor.name in existing:
                        continue
                    session.add(
                        ProviderConfig(
                            name=descriptor.name,
                            api_key=descriptor.api_key,
                            model=descriptor.model,
                            enabled=descriptor.enabled,
                            priority=descriptor.priority,
                            position=position,
                        )
                    )
                    position += 1
                    added += 1

                await session.commit()
                if added:
                    logger.info("Seeded %d default provider descriptor(s)", added)
        except Exception as e:
            logger.error("Database error seeding providers: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not initialize provider configuration.",
                context={"error_type": type(e).__name__},
            )

    # ── Excluded applications (app_settings["excluded_apps"]) ─────────────

    async def get_excluded_apps(self) -> Optional[List[str]]:
        try:
            async with self._session_factory() as session:
                row = await session.get(AppSetting, EXCLUDED_APPS_KEY)
                return None if row is None else list(json.loads(row.value))
        except Exception as e:
            logger.error("Database error loading excluded apps: %s", str(e))
            raise DatabaseError(
                message="Could not load privacy settings.",
                context={"error_type": type(e).__name__},
            )

    async def save_excluded_apps(self, apps: List[str]) -> None:
        try:
            async with self._session_factory() as session:
                row = await session.get(AppSetting, EXCLUDED_APPS_KEY)
                if row is None:
                    row = AppSetting(key=EXCLUDED_APPS_KEY, value="[]")
                    session.add(row)
                row.value = json.dumps(list(apps))
                await session.commit()
                logger.info("Saved %d excluded app(s)", len(apps))
        except Exception as e:
            logger.error("Database error saving excluded apps: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save privacy settings.",
                context={"error_type": type(e).__name__},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
config_store: ConfigStore = DatabaseConfigStore(async_session_factory)
