"""Create app_settings table

Revision ID: 002
Revises: 001
Create Date: 2024-06-15 00:00:00.000000+00:00

What:  Key/value table for preferences edited at runtime. The first key is
       "excluded_apps", the JSON list of applications never enhanced.

Rollback: downgrade() drops the table; the excluded-app list reverts to the
EXCLUDED_APPS setting on next start.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
