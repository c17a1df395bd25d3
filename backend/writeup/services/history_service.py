"""
WriteUp Backend: History Service
================================

What:  Persistence and queries for accepted enhancements (the history panel).
How:   Stateless; every method receives the request's AsyncSession, so the
       route's transaction commits or rolls back as a unit.

Retention:
    The table is capped at settings.history_limit rows. add() deletes the
    oldest rows beyond the cap in the same transaction.

Timestamps:
    Stored as UTC. SQLite drops tzinfo on the way back, so rows read from it
    are re-marked as UTC before leaving this module.
"""

import csv
import io
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from writeup.config import settings
from writeup.exceptions import DatabaseError, NotFoundError, ValidationError
from writeup.models.history import HistoryEntry
from writeup.schemas.history import (
    ExportFormat,
    HistoryCreate,
    HistoryFilter,
    HistoryItem,
    HistoryList,
    HistoryStats,
    HistoryUpdate,
)

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "id",
    "timestamp",
    "type",
    "provider",
    "original",
    "enhanced",
    "favorite",
    "processingTime",
    "tokensUsed",
]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _escape_like(query: str) -> str:
    """Makes % and _ in a search query match literally (escape char is backslash)."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_item(entry: HistoryEntry) -> HistoryItem:
    return HistoryItem(
        id=entry.id,
        timestamp=_as_utc(entry.timestamp),
        original=entry.original,
        enhanced=entry.enhanced,
        type=entry.type,
        provider=entry.provider,
        processing_time=entry.processing_time,
        tokens_used=entry.tokens_used,
        favorite=entry.favorite,
    )


class HistoryService:
    """
    Business logic for the enhancement history.

    Error Handling Strategy:
        NotFoundError and ValidationError propagate as-is. Anything else from
        the database is logged and re-raised as a generic DatabaseError.
    """

    async def add(self, db: AsyncSession, data: HistoryCreate) -> HistoryItem:
        if not settings.enable_history:
            raise ValidationError(
                message="History is disabled.",
                code="HISTORY_DISABLED",
                user_action="Enable history in Settings",
            )

        try:
            entry = HistoryEntry(
                original=data.original,
                enhanced=data.enhanced,
                type=data.type,
                provider=data.provider,
                processing_time=data.processing_time,
                tokens_used=data.tokens_used,
                favorite=False,
                timestamp=datetime.now(timezone.utc),
            )
            db.add(entry)
            await db.flush()

            # Enforce the cap: everything past the newest N goes
            stale = await db.execute(
                select(HistoryEntry.id)
                .order_by(desc(HistoryEntry.timestamp))
                .offset(settings.history_limit)
            )
            stale_ids = list(stale.scalars().all())
            if stale_ids:
                await db.execute(delete(HistoryEntry).where(HistoryEntry.id.in_(stale_ids)))
                logger.info("Trimmed %d old history item(s)", len(stale_ids))

            logger.info("History item %s added (%s via %s)", entry.id, entry.type, entry.provider)
            return _to_item(entry)

        except Exception as e:
            logger.error("Database error adding history item: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save to history. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def _get_entry(self, db: AsyncSession, item_id: str) -> HistoryEntry:
        result = await db.execute(select(HistoryEntry).where(HistoryEntry.id == item_id))
        entry = result.scalar_one_or_none()
        if entry is None:
            raise NotFoundError(resource="history item", resource_id=item_id)
        return entry

    async def get(self, db: AsyncSession, item_id: str) -> HistoryItem:
        try:
            return _to_item(await self._get_entry(db, item_id))
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching history item %s: %s", item_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the history item. Please try again.",
                context={"item_id": item_id},
            )

    async def list_items(
        self,
        db: AsyncSession,
        filters: Optional[HistoryFilter] = None,
        limit: Optional[int] = None,
    ) -> HistoryList:
        """
        Newest-first listing with optional search and filters.

        query is matched case-insensitively against both the original and the
        enhanced text. total_count is the number of matches before `limit`.
        """
        filters = filters or HistoryFilter()
        try:
            conditions = []
            if filters.query:
                pattern = f"%{_escape_like(filters.query)}%"
                conditions.append(
                    or_(
                        HistoryEntry.original.ilike(pattern, escape="\\"),
                        HistoryEntry.enhanced.ilike(pattern, escape="\\"),
                    )
                )
            if filters.type:
                conditions.append(HistoryEntry.type == filters.type)
            if filters.provider:
                conditions.append(HistoryEntry.provider == filters.provider)
            if filters.favorites_only:
                conditions.append(HistoryEntry.favorite.is_(True))
            if filters.from_date:
                conditions.append(HistoryEntry.timestamp >= _as_utc(filters.from_date))
            if filters.to_date:
                conditions.append(HistoryEntry.timestamp <= _as_utc(filters.to_date))

            query = select(HistoryEntry).where(*conditions).order_by(desc(HistoryEntry.timestamp))
            if limit:
                query = query.limit(limit)
            result = await db.execute(query)
            items = [_to_item(entry) for entry in result.scalars().all()]

            count_result = await db.execute(select(func.count(HistoryEntry.id)).where(*conditions))
            total_count = count_result.scalar() or 0

            return HistoryList(items=items, total_count=total_count)

        except Exception as e:
            logger.error("Database error listing history: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve history. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update(self, db: AsyncSession, item_id: str, data: HistoryUpdate) -> HistoryItem:
        try:
            entry = await self._get_entry(db, item_id)
            if data.enhanced is not None:
                entry.enhanced = data.enhanced
            if data.favorite is not None:
                entry.favorite = data.favorite
            await db.flush()
            return _to_item(entry)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error updating history item %s: %s", item_id, str(e))
            raise DatabaseError(
                message="Could not update the history item. Please try again.",
                context={"item_id": item_id},
            )

    async def toggle_favorite(self, db: AsyncSession, item_id: str) -> HistoryItem:
        try:
            entry = await self._get_entry(db, item_id)
            entry.favorite = not entry.favorite
            await db.flush()
            return _to_item(entry)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error toggling favorite on %s: %s", item_id, str(e))
            raise DatabaseError(
                message="Could not update the history item. Please try again.",
                context={"item_id": item_id},
            )

    async def delete_item(self, db: AsyncSession, item_id: str) -> None:
        try:
            entry = await self._get_entry(db, item_id)
            await db.delete(entry)
            await db.flush()
            logger.info("History item %s deleted", item_id)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting history item %s: %s", item_id, str(e))
            raise DatabaseError(
                message="Could not delete the history item. Please try again.",
                context={"item_id": item_id},
            )

    async def clear(self, db: AsyncSession) -> int:
        """Deletes every history item; returns how many were removed."""
        try:
            result = await db.execute(delete(HistoryEntry))
            logger.info("History cleared (%d item(s))", result.rowcount)
            return result.rowcount or 0
        except Exception as e:
            logger.error("Database error clearing history: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not clear history. Please try again.")

    async def stats(self, db: AsyncSession) -> HistoryStats:
        try:
            total = (await db.execute(select(func.count(HistoryEntry.id)))).scalar() or 0
            favorites = (
                await db.execute(
                    select(func.count(HistoryEntry.id)).where(HistoryEntry.favorite.is_(True))
                )
            ).scalar() or 0

            by_type = await db.execute(
                select(HistoryEntry.type, func.count(HistoryEntry.id)).group_by(HistoryEntry.type)
            )
            by_provider = await db.execute(
                select(HistoryEntry.provider, func.count(HistoryEntry.id)).group_by(
                    HistoryEntry.provider
                )
            )
            average = (await db.execute(select(func.avg(HistoryEntry.processing_time)))).scalar()

            return HistoryStats(
                total=total,
                favorites=favorites,
                by_type={name: count for name, count in by_type.all()},
                by_provider={name: count for name, count in by_provider.all()},
                average_processing_time=float(average) if average is not None else None,
            )
        except Exception as e:
            logger.error("Database error computing history stats: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not compute history statistics.")

    async def export(self, db: AsyncSession, export_format: ExportFormat = "json") -> str:
        """Serializes the whole history, newest first, as JSON or CSV text."""
        items: List[HistoryItem] = (await self.list_items(db)).items

        if export_format == "csv":
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for item in items:
                row = item.model_dump(mode="json", by_alias=True)
                writer.writerow({column: row.get(column) for column in CSV_COLUMNS})
            return buffer.getvalue()

        return json.dumps(
            [item.model_dump(mode="json", by_alias=True) for item in items],
            indent=2,
            ensure_ascii=False,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
history_service = HistoryService()
