"""Create subscriptions table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `subscriptions` table: one row per email address.
How:   UUID primary key, unique email, TIMESTAMP WITH TIME ZONE for the
       subscription time, and a status column that starts at
       'pending_confirmation'.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "subscriptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "subscribed_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        # pending_confirmation → confirmed
        sa.Column(
            "status",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'pending_confirmation'"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_subscriptions_email"),
    )

    # Publishing selects every confirmed subscriber
    op.create_index("idx_subscriptions_status", "subscriptions", ["status"])


def downgrade() -> None:
    op.drop_index("idx_subscriptions_status", table_name="subscriptions")
    op.drop_table("subscriptions")
