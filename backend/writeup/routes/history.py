"""
WriteUp Backend: History Routes
===============================

What:  CRUD, search, stats, and export for the enhancement history panel.
How:   Each handler gets a request-scoped session from get_db_session() and
       delegates to HistoryService; the session commits when the handler
       returns without raising.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from writeup.database import get_db_session
from writeup.schemas.enhancement import ErrorEnvelope
from writeup.schemas.history import (
    ExportFormat,
    HistoryCreate,
    HistoryFilter,
    HistoryItem,
    HistoryList,
    HistoryStats,
    HistoryUpdate,
)
from writeup.services.history_service import history_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/history", tags=["History"])

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
}


@router.get(
    "",
    response_model=HistoryList,
    summary="List history items",
    description="Newest first. Supports text search and filters by type, provider, favourites, and date range.",
)
async def list_history(
    query: str | None = Query(default=None, description="Case-insensitive search in original and enhanced text"),
    type: str | None = Query(default=None, description="Enhancement type, e.g. 'grammar'"),
    provider: str | None = Query(default=None, description="Provider name"),
    favorites_only: bool = Query(default=False, alias="favoritesOnly"),
    from_date: datetime | None = Query(default=None, alias="fromDate", description="ISO 8601, inclusive"),
    to_date: datetime | None = Query(default=None, alias="toDate", description="ISO 8601, inclusive"),
    limit: int | None = Query(default=None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db_session),
) -> HistoryList:
    filters = HistoryFilter(
        query=query,
        type=type,
        provider=provider,
        favorites_only=favorites_only,
        from_date=from_date,
        to_date=to_date,
    )
    return await history_service.list_items(db, filters, limit)


@router.post("", response_model=HistoryItem, status_code=201, summary="Add a history item")
async def add_history_item(
    data: HistoryCreate,
    db: AsyncSession = Depends(get_db_session),
) -> HistoryItem:
    return await history_service.add(db, data)


@router.get("/stats", response_model=HistoryStats, summary="History statistics")
async def history_stats(db: AsyncSession = Depends(get_db_session)) -> HistoryStats:
    return await history_service.stats(db)


@router.get("/export", summary="Export history as JSON or CSV")
async def export_history(
    format: ExportFormat = Query(default="json"),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    content = await history_service.export(db, format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="writeup-history.{format}"'},
    )


@router.delete("", summary="Clear all history")
async def clear_history(db: AsyncSession = Depends(get_db_session)) -> dict:
    deleted = await history_service.clear(db)
    return {"deleted": deleted}


@router.get(
    "/{item_id}",
    response_model=HistoryItem,
    responses={404: {"description": "History item not found", "model": ErrorEnvelope}},
    summary="Get a history item",
)
async def get_history_item(item_id: str, db: AsyncSession = Depends(get_db_session)) -> HistoryItem:
    return await history_service.get(db, item_id)


@router.patch(
    "/{item_id}",
    response_model=HistoryItem,
    responses={404: {"description": "History item not found", "model": ErrorEnvelope}},
    summary="Update a history item",
)
async def update_history_item(
    item_id: str,
    data: HistoryUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> HistoryItem:
    return await history_service.update(db, item_id, data)


@router.post(
    "/{item_id}/favorite",
    response_model=HistoryItem,
    responses={404: {"description": "History item not found", "model": ErrorEnvelope}},
    summary="Toggle favourite",
)
async def toggle_favorite(item_id: str, db: AsyncSession = Depends(get_db_session)) -> HistoryItem:
    return await history_service.toggle_favorite(db, item_id)


@router.delete(
    "/{item_id}",
    status_code=204,
    responses={404: {"description": "History item not found", "model": ErrorEnvelope}},
    summary="Delete a history item",
)
async def delete_history_item(item_id: str, db: AsyncSession = Depends(get_db_session)) -> Response:
    await history_service.delete_item(db, item_id)
    return Response(status_code=204)
