"""
WriteUp Backend: History Schemas
================================

What:  API contract for the enhancement history list, stats, and exports.
Why:   Separate from the ORM model so the database layout can change without
       breaking the history panel.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field

from writeup.schemas.enhancement import CamelModel


class HistoryCreate(CamelModel):
    """Body of POST /api/history; the popup sends this after the user accepts a suggestion."""

    original: str = Field(min_length=1)
    enhanced: str = Field(min_length=1)
    type: str
    provider: str
    processing_time: Optional[float] = None
    tokens_used: Optional[int] = None


class HistoryUpdate(CamelModel):
    enhanced: Optional[str] = None
    favorite: Optional[bool] = None


class HistoryItem(CamelModel):
    id: str
    timestamp: datetime
    original: str
    enhanced: str
    type: str
    provider: str
    processing_time: Optional[float] = None
    tokens_used: Optional[int] = None
    favorite: bool = False

    model_config = {"from_attributes": True}


class HistoryFilter(CamelModel):
    """
    Query for GET /api/history.

    query:          Case-insensitive substring over original and enhanced text
    type/provider:  Exact match
    favorites_only: Only starred items
    from_date/to_date: Inclusive creation-time bounds
    """

    query: Optional[str] = None
    type: Optional[str] = None
    provider: Optional[str] = None
    favorites_only: bool = False
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


class HistoryStats(CamelModel):
    total: int
    favorites: int
    by_type: Dict[str, int]
    by_provider: Dict[str, int]
    average_processing_time: Optional[float] = None


ExportFormat = Literal["json", "csv"]


class HistoryList(CamelModel):
    items: List[HistoryItem]
    total_count: int
