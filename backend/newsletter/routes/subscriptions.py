"""
Newsletter Backend: Subscription Route Handlers
===============================================

What:  POST /subscriptions (form: name, email) and GET /subscriptions/confirm.
How:   Parses input into domain values, delegates to SubscriptionService.

Status codes:
    200  subscribed / confirmed
    400  missing or invalid form fields, missing or malformed token
    401  unknown subscription token
    500  database or email API failure
"""

import logging

from fastapi import APIRouter, Depends, Form, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter.config import Settings
from newsletter.database import get_db_session
from newsletter.dependencies import get_email_client, get_settings
from newsletter.domain import NewSubscriber
from newsletter.schemas.newsletter import ErrorResponse, MessageResponse
from newsletter.services.email_client import EmailClient
from newsletter.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post(
    "",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing or invalid name/email", "model": ErrorResponse},
        500: {"description": "Database or email API failure", "model": ErrorResponse},
    },
    summary="Subscribe an email address",
    description=(
        "Stores the subscriber as pending and emails a confirmation link. "
        "Expects an application/x-www-form-urlencoded body with `name` and `email`."
    ),
)
async def subscribe(
    name: str = Form(..., description="Subscriber display name"),
    email: str = Form(..., description="Subscriber email address"),
    db: AsyncSession = Depends(get_db_session),
    email_client: EmailClient = Depends(get_email_client),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    new_subscriber = NewSubscriber.from_form(email=email, name=name)
    return await subscription_service.subscribe(
        db=db,
        email_client=email_client,
        base_url=settings.app_base_url,
        new_subscriber=new_subscriber,
    )


@router.get(
    "/confirm",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing or malformed token", "model": ErrorResponse},
        401: {"description": "Unknown token", "model": ErrorResponse},
    },
    summary="Confirm a pending subscription",
)
async def confirm(
    subscription_token: str = Query(..., description="Token from the confirmation email"),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await subscription_service.confirm(db=db, subscription_token=subscription_token)
