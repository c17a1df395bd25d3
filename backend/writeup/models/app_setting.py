"""
WriteUp Backend: App Setting Model
==================================

What:  ORM model for the `app_settings` table, a small key/value store for
       user preferences edited through the API (e.g. the excluded-app list).
Who:   Read and written only through DatabaseConfigStore.

A missing key means "never saved": callers fall back to their defaults.
Values are JSON text.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from writeup.database import Base


class AppSetting(Base):
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<AppSetting(key='{self.key}')>"
