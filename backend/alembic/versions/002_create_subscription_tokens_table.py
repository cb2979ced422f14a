"""Create subscription_tokens table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Stores the confirmation tokens emailed to subscribers.
How:   The token itself is the primary key; each token references the
       subscriber it confirms. A subscriber may own several tokens.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "subscription_tokens",
        sa.Column("subscription_token", sa.Text(), nullable=False),
        sa.Column("subscriber_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint("subscription_token"),
        sa.ForeignKeyConstraint(
            ["subscriber_id"],
            ["subscriptions.id"],
            name="fk_subscription_tokens_subscriber_id",
        ),
    )


def downgrade() -> None:
    op.drop_table("subscription_tokens")
