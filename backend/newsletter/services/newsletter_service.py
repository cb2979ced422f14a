"""
Newsletter Backend: Newsletter Publishing Service
=================================================

What:  Delivers one newsletter issue to every confirmed subscriber.
How:   Loads confirmed addresses, re-validates each one, sends sequentially.
Who:   Called by routes/newsletters.py after the publisher is authenticated.

Stored addresses are validated again before sending: rows written before a
validation rule changed may no longer pass. Those are skipped and logged,
not treated as a failure of the whole issue.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter.domain import SubscriberEmail
from newsletter.exceptions import DatabaseError, ValidationError
from newsletter.models.subscription import Subscription, SubscriptionStatus
from newsletter.schemas.newsletter import PublishRequest, PublishResponse
from newsletter.services.email_client import EmailClient

logger = logging.getLogger(__name__)


class NewsletterService:

    async def publish(
        self,
        db: AsyncSession,
        email_client: EmailClient,
        issue: PublishRequest,
    ) -> PublishResponse:
        """
        Send `issue` to all confirmed subscribers.

        Raises:
            DatabaseError: Subscribers could not be loaded
            EmailDeliveryError: The email API failed for one of the recipients;
                recipients before it have already been sent the issue
        """
        emails = await self._confirmed_subscriber_emails(db)

        delivered = 0
        skipped = 0
        for raw_email in emails:
            try:
                recipient = SubscriberEmail.parse(raw_email)
            except ValidationError as e:
                skipped += 1
                logger.warning(
                    "Skipping a confirmed subscriber: stored contact details are invalid (%s)",
                    e.context.get("reason", e.message),
                )
                continue

            await email_client.send_email(
                recipient,
                issue.title,
                issue.content.html,
                issue.content.text,
            )
            delivered += 1

        logger.info(
            "Newsletter '%s' delivered to %d subscribers (%d skipped)",
            issue.title,
            delivered,
            skipped,
        )
        return PublishResponse(delivered=delivered, skipped=skipped)

    async def _confirmed_subscriber_emails(self, db: AsyncSession) -> List[str]:
        try:
            result = await db.execute(
                select(Subscription.email).where(
                    Subscription.status == SubscriptionStatus.CONFIRMED
                )
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to load confirmed subscribers: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load subscribers. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e


newsletter_service = NewsletterService()
