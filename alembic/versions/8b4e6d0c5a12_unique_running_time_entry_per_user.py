"""unique running time entry per user

Revision ID: 8b4e6d0c5a12
Revises: 3f1c2a9d7e01
Create Date: 2026-03-02 10:31:45.660913

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b4e6d0c5a12'
down_revision: Union[str, Sequence[str], None] = '3f1c2a9d7e01'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_index(
        "uq_time_entries_running_user",
        "time_entries",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_running"),
        sqlite_where=sa.text("is_running = 1"),
    )
    op.create_index(
        "ix_time_entries_company_id_start_time",
        "time_entries",
        ["company_id", "start_time"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_time_entries_company_id_start_time", table_name="time_entries")
    op.drop_index("uq_time_entries_running_user", table_name="time_entries")
