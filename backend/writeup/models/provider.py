"""
WriteUp Backend: Provider Configuration Model
=============================================

What:  ORM model for the `providers` table, one row per backend name.
Who:   Read and written only through DatabaseConfigStore.

Table Design:
    - name is the primary key: the set of backends is closed and small.
    - position records insertion order so listing is deterministic; the
      orchestrator still breaks priority ties by registry order, not position.
    - api_key is stored as entered. The database file lives in the user's
      profile directory, next to the desktop shell's own settings.
"""

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from writeup.database import Base


class ProviderConfig(Base):
    __tablename__ = "providers"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)

    # Empty string means "not set"; the local backend never needs one
    api_key: Mapped[str] = mapped_column(Text, nullable=False, default="")

    model: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    # A provider may be enabled with no key; it is then skipped at selection time
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Lower tries first; duplicates are allowed
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        # Never include api_key here; reprs end up in logs
        return (
            f"<ProviderConfig(name='{self.name}', model='{self.model}', "
            f"enabled={self.enabled}, priority={self.priority})>"
        )
