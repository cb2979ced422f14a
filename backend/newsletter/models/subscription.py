"""
Newsletter Backend: Subscription Models
=======================================

What:  ORM models for the `subscriptions` and `subscription_tokens` tables.
Who:   Used by SubscriptionService and NewsletterService; read by Alembic.

Lifecycle of a subscriber:
    1. POST /subscriptions inserts a row with status 'pending_confirmation'
       and stores a token pointing at it
    2. GET /subscriptions/confirm with that token flips status to 'confirmed'
    3. Only confirmed subscribers receive published issues

Tokens are never deleted; a subscriber may hold several (one per subscribe
request) and any of them confirms the subscription.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from newsletter.database import Base


class SubscriptionStatus:
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        # Publishing selects every confirmed subscriber
        Index("idx_subscriptions_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Normalized by SubscriberEmail.parse before it gets here
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=SubscriptionStatus.PENDING_CONFIRMATION,
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, status='{self.status}')>"


class SubscriptionToken(Base):
    __tablename__ = "subscription_tokens"

    subscription_token: Mapped[str] = mapped_column(Text, primary_key=True)
    subscriber_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subscriptions.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SubscriptionToken(subscriber_id={self.subscriber_id})>"
