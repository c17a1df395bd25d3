"""Create providers and history tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates the `providers` table (one saved descriptor per AI backend)
       and the `history` table (accepted enhancements).
How:   Portable column types only, so the same migration runs on the default
       SQLite file and on any other async SQLAlchemy backend.

Rollback: downgrade() drops both tables; saved API keys and history are lost.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "providers",
        sa.Column("name", sa.String(100), nullable=False),
        # Empty string means "no key"; the local backend never has one
        sa.Column("api_key", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("model", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("1")),
        # Insertion order, used for deterministic listing
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "history",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("original", sa.Text(), nullable=False),
        sa.Column("enhanced", sa.Text(), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("provider", sa.String(100), nullable=False),
        sa.Column("processing_time", sa.Float(), nullable=True),
        sa.Column("tokens_used", sa.Integer(), nullable=True),
        sa.Column("favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )

    # The history panel always lists newest first
    op.create_index(
        "idx_history_timestamp",
        "history",
        [sa.text("timestamp DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_history_timestamp", table_name="history")
    op.drop_table("history")
    op.drop_table("providers")
