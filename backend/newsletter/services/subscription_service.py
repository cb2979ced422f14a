"""
Newsletter Backend: Subscription Service
========================================

What:  Subscribe and confirm workflows.
How:   Composes the database session, the domain values and the email client.
Who:   Called by routes/subscriptions.py.

Subscribe Flow (POST /subscriptions):
    ┌──────────┐    ┌──────────────────────────┐    ┌────────────────┐
    │ Validate │───▶│ Transaction:             │───▶│ Send           │
    │ (domain) │    │  upsert pending          │    │ confirmation   │
    └──────────┘    │  subscriber + new token  │    │ email          │
                    │  COMMIT                  │    └────────────────┘
                    └──────────────────────────┘

    The transaction commits before the email is sent. If the email API
    fails, the subscriber and token stay stored and the request fails
    with 500; subscribing again issues a fresh token and re-sends.

Confirm Flow (GET /subscriptions/confirm):
    token shape check → token lookup → status = 'confirmed'
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter.domain import (
    NewSubscriber,
    SubscriberEmail,
    generate_subscription_token,
    is_valid_subscription_token,
)
from newsletter.exceptions import AuthenticationError, DatabaseError, ValidationError
from newsletter.models.subscription import (
    Subscription,
    SubscriptionStatus,
    SubscriptionToken,
)
from newsletter.schemas.newsletter import MessageResponse
from newsletter.services.email_client import EmailClient

logger = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Welcome!"


def confirmation_link(base_url: str, subscription_token: str) -> str:
    return f"{base_url}/subscriptions/confirm?subscription_token={subscription_token}"


class SubscriptionService:
    """
    Stateless; receives the session and email client on every call.

    Error Handling Strategy:
        SQLAlchemy errors are wrapped in DatabaseError (generic 500, details
        logged). EmailDeliveryError from the client propagates unchanged.
    """

    async def subscribe(
        self,
        db: AsyncSession,
        email_client: EmailClient,
        base_url: str,
        new_subscriber: NewSubscriber,
    ) -> MessageResponse:
        """
        Register a subscriber and email them a confirmation link.

        Args:
            db: Session for this request
            email_client: Outbound email API client
            base_url: Public base URL of this service, without trailing slash
            new_subscriber: Already-validated form input

        Raises:
            DatabaseError: The subscriber or token could not be stored
            EmailDeliveryError: The confirmation email could not be sent
        """
        logger.info("Adding '%s' as a new subscriber.", new_subscriber.email)

        try:
            subscriber = await self._find_by_email(db, new_subscriber.email)

            if subscriber is not None and subscriber.status == SubscriptionStatus.CONFIRMED:
                logger.info("'%s' is already confirmed; no email sent", new_subscriber.email)
                return MessageResponse(message="You are already subscribed.")

            if subscriber is None:
                subscriber = Subscription(
                    id=uuid.uuid4(),
                    email=new_subscriber.email.value,
                    name=new_subscriber.name.value,
                    status=SubscriptionStatus.PENDING_CONFIRMATION,
                )
                db.add(subscriber)
                await db.flush()

            subscription_token = generate_subscription_token()
            db.add(
                SubscriptionToken(
                    subscription_token=subscription_token,
                    subscriber_id=subscriber.id,
                )
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to store subscriber: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save your subscription. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("New subscriber details have been saved (id=%s)", subscriber.id)

        await self.send_confirmation_email(
            email_client, new_subscriber.email, base_url, subscription_token
        )
        return MessageResponse(message="Please check your inbox to confirm your subscription.")

    async def send_confirmation_email(
        self,
        email_client: EmailClient,
        recipient: SubscriberEmail,
        base_url: str,
        subscription_token: str,
    ) -> None:
        link = confirmation_link(base_url, subscription_token)
        html_body = (
            "Welcome to our newsletter!<br />"
            f'Click <a href="{link}">here</a> to confirm your subscription.'
        )
        text_body = f"Welcome to our newsletter!\nVisit {link} to confirm your subscription."
        await email_client.send_email(recipient, CONFIRMATION_SUBJECT, html_body, text_body)

    async def confirm(self, db: AsyncSession, subscription_token: str) -> MessageResponse:
        """
        Mark the subscriber owning `subscription_token` as confirmed.

        Raises:
            ValidationError: Token is not 25 alphanumeric characters (400)
            AuthenticationError: No subscriber owns this token (401)
            DatabaseError: Lookup or update failed (500)
        """
        if not is_valid_subscription_token(subscription_token):
            raise ValidationError(
                "The subscription token is malformed.", field="subscription_token"
            )

        try:
            subscriber_id = await self._find_subscriber_id(db, subscription_token)
            if subscriber_id is None:
                raise AuthenticationError("The subscription token is not recognised.")

            await db.execute(
                update(Subscription)
                .where(Subscription.id == subscriber_id)
                .values(status=SubscriptionStatus.CONFIRMED)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to confirm subscriber: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not confirm your subscription. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Subscriber %s confirmed", subscriber_id)
        return MessageResponse(message="Your subscription is confirmed.")

    async def _find_by_email(
        self, db: AsyncSession, email: SubscriberEmail
    ) -> Optional[Subscription]:
        result = await db.execute(
            select(Subscription).where(Subscription.email == email.value)
        )
        return result.scalar_one_or_none()

    async def _find_subscriber_id(
        self, db: AsyncSession, subscription_token: str
    ) -> Optional[uuid.UUID]:
        result = await db.execute(
            select(SubscriptionToken.subscriber_id).where(
                SubscriptionToken.subscription_token == subscription_token
            )
        )
        return result.scalar_one_or_none()


subscription_service = SubscriptionService()
